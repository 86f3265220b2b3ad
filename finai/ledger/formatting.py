"""
Amount formatting for messages and prompts.

Money stays an int everywhere else; this is the only place it becomes text.
"""


def format_amount(amount: int, prefix: str = "Rp") -> str:
    """
    Format an integer amount with thousands separators.

    >>> format_amount(1500000)
    'Rp1,500,000'
    >>> format_amount(-2500)
    '-Rp2,500'
    """
    sign = "-" if amount < 0 else ""
    return f"{sign}{prefix}{abs(int(amount)):,}"
