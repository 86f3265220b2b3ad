"""
Prompt Templates

All text sent to the model lives here, so wording changes never touch the
logic that decides WHICH prompt to send.

CRITICAL: The extraction contract below is a request, not a guarantee.
Everything the model returns is validated again by the response validator.
"""

from datetime import date, timedelta


def base_prompt(current_date: date) -> str:
    return (
        "You are FinAI, a careful personal finance assistant. You help the user "
        "record transactions and understand their own money.\n"
        f"Today is {current_date.strftime('%A, %d %B %Y')} "
        f"(ISO: {current_date.isoformat()}).\n"
        "Never invent balances or transactions. Only use the data given below."
    )


def transaction_prompt(
    accounts: str,
    balances: str,
    categories: str,
    current_date: date,
) -> str:
    """Extraction prompt: turn one user message into one JSON object."""
    yesterday = current_date - timedelta(days=1)
    day_after_tomorrow = current_date + timedelta(days=2)
    last_week = current_date - timedelta(days=7)

    return f"""TASK: Extract ONE transaction from the user's message.

ACCOUNTING RULES:
1. BALANCE = initial balance + total income - total expense
2. A transfer moves money between two of the user's accounts (double entry)
3. Every transaction belongs to exactly one account

AVAILABLE ACCOUNTS:
{accounts}

REAL-TIME BALANCES:
{balances}

VALID CATEGORIES:
{categories}

OUTPUT: exactly one JSON object and nothing else:
{{
    "type": "expense" | "income" | "transfer",
    "amount": number,
    "category": string,
    "description": string,
    "date": "YYYY-MM-DD",
    "accountId": string,
    "toAccountId": string (transfer only),
    "merchant": string (optional),
    "items": [{{"name": string, "qty": number, "price": number}}] (optional),
    "requiresClarification": boolean (optional)
}}

PARSING RULES:

1. DATES
   - "yesterday" / "kemarin" -> {yesterday.isoformat()}
   - "day after tomorrow" / "lusa" -> {day_after_tomorrow.isoformat()}
   - "last week" / "minggu lalu" -> {last_week.isoformat()}
   - Otherwise -> {current_date.isoformat()}

2. AMOUNTS (always a plain integer)
   - "500k" / "500rb" -> 500000
   - "1.5M" / "1.5jt" -> 1500000
   - "all balance" / "remainder" / "semua saldo" of an account -> that account's REAL-TIME balance
   - "half balance" / "setengah saldo" -> 50% of that account's REAL-TIME balance

3. ACCOUNT ID
   - Pick the id from AVAILABLE ACCOUNTS by matching the account name or provider
   - If no single account clearly matches, leave "accountId" empty and set
     "requiresClarification": true. Do NOT guess.

4. TRANSFERS
   - "accountId" is the SOURCE account, "toAccountId" the DESTINATION
   - "category" is "Transfer"
   - If the source is unclear, set "requiresClarification": true

5. CATEGORIES
   - Use one of VALID CATEGORIES exactly as written

6. RECEIPTS (when an image is attached)
   - Store name -> "merchant", purchased lines -> "items"
   - Final total paid (after tax and discounts) -> "amount"
   - Date printed on the receipt -> "date"

If the message is not a transaction at all, reply with:
{{"error": true, "errorMessage": "short explanation"}}"""


def query_prompt(accounts: str, recent: str) -> str:
    return f"""TASK: Answer the user's question about their finances.

ACCOUNTS:
{accounts}

RECENT TRANSACTIONS:
{recent}

You can total income or spending by date, category or account, check
balances, compare periods and find the largest or smallest transactions.

RESPONSE: Natural language with concrete numbers."""


def advice_prompt(accounts: str, recent: str) -> str:
    return f"""TASK: Give personal finance advice.

ACCOUNTS:
{accounts}

RECENT TRANSACTIONS:
{recent}

Focus on: categories where the user overspends, moving money between
accounts, saving toward goals, unusual spending, upcoming recurring bills.

RESPONSE: 2-3 actionable suggestions, each with reasoning and concrete numbers."""


def planning_prompt(accounts: str, recent: str) -> str:
    return f"""TASK: Help the user plan a budget, savings target or investment.

ACCOUNTS:
{accounts}

RECENT TRANSACTIONS:
{recent}

Base every figure on the user's actual income and spending above.

RESPONSE: A short step-by-step plan with monthly amounts."""


def analysis_prompt(accounts: str, recent: str) -> str:
    return f"""TASK: Analyse the user's spending patterns.

ACCOUNTS:
{accounts}

RECENT TRANSACTIONS:
{recent}

Look at category shares, trends over time and recurring charges.

RESPONSE: Data-driven insight, e.g. "70% of your spending goes to Food & Drink"."""


RECEIPT_SCAN_INSTRUCTION = (
    "Read this receipt and record it as an expense. Use the receipt date, "
    "the store name as merchant and the final total as amount."
)


# =============================================================================
# ADVISOR PROMPTS
# =============================================================================

def category_suggestion_prompt(description: str, categories: list[str]) -> str:
    return f"""Classify this transaction description into exactly one category.

Categories: [{', '.join(categories)}]

Description: "{description}"

Rules:
1. Pick ONE category from the list above.
2. If nothing fits, answer "Other".
3. Answer with the category name only, no explanation."""


def budget_suggestion_prompt(
    category: str,
    spent: str,
    budget: str,
    percentage: float,
    days_remaining: int,
    daily_average: str,
    over_budget: bool,
) -> str:
    goal = "cut back the overspending" if over_budget else "stay within the budget"
    return f"""The user has spent {spent} on {category} out of a {budget} budget ({percentage:.0f}%).

Days remaining: {days_remaining}
Daily average: {daily_average}

TASK: Give 2-3 practical, specific suggestions to {goal}.

RULES:
- Each suggestion must be something the user can do right away
- Mention concrete amounts
- Stay focused on {category}

OUTPUT: a JSON array of at most 3 strings, no numbering.
Example: ["Cook at home 3 times a week to save Rp300,000", "Limit food delivery to twice a week"]"""


def reconciliation_tip_prompt(difference: int, gap: str, recent: str) -> str:
    direction = "surplus" if difference > 0 else "shortfall"
    return f"""Analyse a balance reconciliation gap.
Gap: {gap} ({direction})

Recent transactions:
{recent}

From the pattern above, give ONE specific reason this gap might exist.
Answer in one sentence of at most 100 characters.

Good answers:
- "Probably an unrecorded internet bill or subscription"
- "Maybe a cashback or refund that was never recorded\""""


def monthly_insight_prompt(month: str, summary: str, sample: str) -> str:
    return f"""TASK: Write a short monthly finance review.

PERIOD: {month}

SUMMARY:
{summary}

TRANSACTIONS (largest 50):
{sample}

INSTRUCTIONS:
- Comment on the saving rate
- Point out wasteful spending using the top categories
- Give 1 concrete suggestion for next month
- Friendly but professional tone, markdown output"""


def health_report_prompt(context: str) -> str:
    return f"""FINANCIAL HEALTH REPORT

{context}

TASK: Give a complete assessment of the user's financial health:
1. Evaluate the saving rate and cash flow
2. Identify areas that need improvement
3. Give 3 concrete suggestions
4. Warn about red flags (saving rate under 10%, high severity anomalies)

Friendly but professional tone, markdown output."""
