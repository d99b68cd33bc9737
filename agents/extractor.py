"""Heuristic extractor: deterministic text-to-action mapping."""

import math
import re
import unicodedata
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from schemas.actions import (
    FinancialAction,
    SearchTransactions,
    AddTransaction,
    ModifyTransaction,
    DeleteTransaction,
    CreateBudget,
    CreateGoal,
    CreateInvestment,
    CreateRecurringTransaction,
    ListGoals,
    ListBudgets,
    Statistics,
    AnalyzeHabits,
)
from schemas.ledger import (
    Category,
    TransactionKind,
    BudgetPeriod,
    GoalType,
    InvestmentType,
    Frequency,
)
from utils.dates import start_of_month, end_of_month, add_months

# Integer part with optional space/comma/point thousands groups, then optional 1-2 digit decimals
NUMBER_PATTERN = re.compile(
    r"(?<![\w.,])"
    r"(?P<int>\d{1,3}(?:(?P<sep>[   ,.])\d{3})(?:(?P=sep)\d{3})*|\d+)"
    r"(?:[.,](?P<dec>\d{1,2}))?"
    r"(?!\d)"
)
CURRENCY_AFTER = re.compile(
    r"^\s?(mad|dhs?|dirhams?|eur|euros?|€|usd|\$|dollars?|gbp|£)(?![a-z])",
    re.IGNORECASE
)
CURRENCY_BEFORE = re.compile(r"(€|\$|£|mad|eur|usd)\s?$", re.IGNORECASE)
DURATION_AFTER = re.compile(
    r"^\s?(months?|mois|years?|ans?|annees?|weeks?|semaines?|days?|jours?)\b",
    re.IGNORECASE
)
DATE_LITERAL = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b")

CATEGORY_KEYWORDS: List[Tuple[Category, List[str]]] = [
    (Category.FOOD, [
        "restaurant", "resto", "cafe", "coffee", "food", "lunch", "dinner", "breakfast",
        "groceries", "grocery", "supermarket", "pizza", "burger", "manger", "repas",
        "dejeuner", "diner", "courses", "epicerie", "boulangerie", "alimentation",
    ]),
    (Category.TRANSPORT, [
        "taxi", "uber", "bus", "train", "metro", "tram", "fuel", "gas", "petrol",
        "parking", "transport", "carburant", "essence", "gasoil", "peage",
    ]),
    (Category.HOUSING, [
        "rent", "loyer", "electricity", "electricite", "water", "eau", "internet",
        "housing", "logement", "mortgage",
    ]),
    (Category.HEALTH, [
        "doctor", "pharmacy", "medicine", "hospital", "dentist", "health",
        "medecin", "pharmacie", "medicament", "sante", "hopital",
    ]),
    (Category.EDUCATION, [
        "school", "course", "tuition", "book", "books", "education", "ecole",
        "formation", "livre", "livres", "universite",
    ]),
    (Category.ENTERTAINMENT, [
        "cinema", "movie", "movies", "netflix", "concert", "game", "games", "spotify",
        "sortie", "loisirs", "divertissement",
    ]),
    (Category.SHOPPING, [
        "clothes", "shoes", "shopping", "amazon", "vetements", "chaussures",
    ]),
    (Category.SALARY, ["salary", "salaire", "paycheck", "wage", "wages"]),
    (Category.INVESTMENT, ["dividend", "dividends", "dividende", "dividendes"]),
]

INCOME_WORDS = re.compile(
    r"\b(received|receive|earned|earn|salary|income|paycheck|got paid|refund|"
    r"recu|gagne|salaire|revenu|revenus)\b"
)
LIST_WORDS = re.compile(
    r"\b(show|list|display|view|see|what are|my|affiche|afficher|montre|montrer|"
    r"liste|lister|voir|mes)\b"
)
LAST_MONTH_WORDS = re.compile(r"\b(last month|previous month|mois dernier|mois precedent)\b")
THIS_MONTH_WORDS = re.compile(r"\b(this month|ce mois)\b")

DELETE_TRIGGER = re.compile(r"\b(delete|remove|erase|supprime[rz]?|efface[rz]?)\b")
MODIFY_TRIGGER = re.compile(r"\b(modify|change|update|edit|correct|modifie[rz]?|corrige[rz]?)\b")
BUDGET_TRIGGER = re.compile(r"\bbudgets?\b")
GOAL_TRIGGER = re.compile(r"\b(goals?|objectifs?|save up|saving for|savings goal|epargner pour)\b")
RECURRING_TRIGGER = re.compile(
    r"\b(every (day|week|month|year)|each (week|month|year)|monthly|weekly|yearly|recurring|"
    r"subscription|abonnement|chaque (semaine|mois|annee)|tous les mois|toutes les semaines|"
    r"mensuel(le)?|hebdomadaire)\b"
)
INVESTMENT_TRIGGER = re.compile(
    r"\b(invest|invested|investing|investment|investi|investir|investissement|stocks?|shares|"
    r"bonds?|obligations?|crypto|bitcoin|btc|ethereum|etf|bourse|immobilier|real estate)\b"
)
STATISTICS_TRIGGER = re.compile(
    r"\b(statistics|stats|summary|overview|balance|how much did i spend|how much have i spent|"
    r"bilan|statistiques|resume|solde|combien (ai-je|j'ai) depense)\b"
)
HABITS_TRIGGER = re.compile(
    r"\b(habits?|spending patterns?|analy[sz]e|analysis|habitudes?|analyse[rz]?|tendances?)\b"
)
ADD_TRIGGER = re.compile(
    r"\b(spent|spend|paid|pay|bought|buy|cost|costs|purchased|received|earned|got paid|"
    r"add|record|depense|paye|achete|recu|gagne|ajoute[rz]?|salaire|salary)\b"
)
SEARCH_TRIGGER = re.compile(
    r"\b(show|list|find|search|display|transactions|what did i|affiche|montre|cherche|"
    r"recherche|liste|voir)\b"
)

DESCRIPTION_PREPOSITION = re.compile(
    r"\b(?:for|at|on|pour|chez|au|aux|à la|a la|à l'|a l')\s+(.+)$",
    re.IGNORECASE
)
DESCRIPTION_NOISE = re.compile(
    r"\b(yesterday|today|day before yesterday|avant-hier|hier|aujourd'hui|this month|"
    r"last month|mad|dhs?|dirhams?|eur|euros?|usd|dollars?)\b|[€$£]",
    re.IGNORECASE
)
DURATION_PHRASE = re.compile(
    r"\b(?:in|within|dans|en)\s+\d+\s+(?:months?|mois|years?|ans?|annees?|weeks?|semaines?)\b",
    re.IGNORECASE
)
LEADING_ARTICLES = re.compile(
    r"^(?:(?:the|a|an|my|some|le|la|les|l'|un|une|mon|ma|mes|du|des)\s+|l')+",
    re.IGNORECASE
)

MAX_DESCRIPTION_LENGTH = 60

Rule = Tuple[Callable[[str], bool], Callable[[str, str, datetime], Optional[FinancialAction]]]


def normalize(text: str) -> str:
    """Lowercase and strip accents for keyword matching."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def parse_amount(text: str) -> Optional[float]:
    """
    Find the amount in a message.

    The first currency-tagged number wins; otherwise the first bare number.
    Date literals and durations ("3 months") are never amounts.

    Args:
        text: Raw message

    Returns:
        Parsed amount or None
    """
    scrubbed = DATE_LITERAL.sub(" ", text)
    first_bare = None

    for match in NUMBER_PATTERN.finditer(scrubbed):
        after = scrubbed[match.end():]
        before = scrubbed[:match.start()]
        if DURATION_AFTER.match(after):
            continue

        integer = match.group("int")
        for sep in (" ", " ", " ", ",", "."):
            integer = integer.replace(sep, "")
        value = float(f"{integer}.{match.group('dec') or 0}")
        if not math.isfinite(value):
            continue

        if CURRENCY_AFTER.match(after) or CURRENCY_BEFORE.search(before):
            return value
        if first_bare is None:
            first_bare = value

    return first_bare


def parse_date(text: str, now: datetime) -> Optional[datetime]:
    """Recognize relative day words and DD/MM[/YYYY] literals."""
    normalized = normalize(text)

    if re.search(r"\b(day before yesterday|avant-hier)\b", normalized):
        return now - timedelta(days=2)
    if re.search(r"\b(yesterday|hier)\b", normalized):
        return now - timedelta(days=1)
    if re.search(r"\b(today|aujourd'hui)\b", normalized):
        return now

    match = DATE_LITERAL.search(text)
    if match:
        day, month = int(match.group(1)), int(match.group(2))
        year = match.group(3)
        if year is None:
            year_value = now.year
        elif len(year) == 2:
            year_value = 2000 + int(year)
        else:
            year_value = int(year)
        try:
            return datetime(year_value, month, day)
        except ValueError:
            return None

    return None


def infer_category(text: str) -> Category:
    """Map text to a category through the keyword table, defaulting to Other."""
    normalized = normalize(text)
    for category, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if re.search(rf"\b{re.escape(keyword)}\b", normalized):
                return category
    return Category.OTHER


def extract_description(text: str) -> str:
    """
    Best-effort description: the phrase after a preposition.

    Falls back to a truncated copy of the message, so the result is never empty.
    """
    description = ""
    match = DESCRIPTION_PREPOSITION.search(text)
    if match:
        description = match.group(1)
        description = DURATION_PHRASE.sub(" ", description)
        description = DATE_LITERAL.sub(" ", description)
        description = NUMBER_PATTERN.sub(" ", description)
        description = DESCRIPTION_NOISE.sub(" ", description)
        description = re.sub(r"\s+", " ", description).strip(" .,!?;:-")
        description = LEADING_ARTICLES.sub("", description).strip(" .,!?;:-")

    if not description:
        description = text.strip()

    return description[:MAX_DESCRIPTION_LENGTH].strip() or text[:MAX_DESCRIPTION_LENGTH]


def infer_kind(normalized: str) -> TransactionKind:
    if INCOME_WORDS.search(normalized):
        return TransactionKind.INCOME
    return TransactionKind.EXPENSE


class HeuristicExtractor:
    """
    Rule-based mapper from a message to at most one FinancialAction.

    Rules are evaluated in a fixed order and the first rule whose trigger
    matches decides the outcome, even when its extractor yields nothing.
    Specific families (delete, modify, budget, goal) come before generic
    add/search triggers.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize extractor.

        Args:
            clock: Source of the current instant for relative dates
        """
        self.clock = clock
        self.rules: List[Rule] = [
            (DELETE_TRIGGER.search, self._extract_delete),
            (MODIFY_TRIGGER.search, self._extract_modify),
            (BUDGET_TRIGGER.search, self._extract_budget),
            (GOAL_TRIGGER.search, self._extract_goal),
            (RECURRING_TRIGGER.search, self._extract_recurring),
            (INVESTMENT_TRIGGER.search, self._extract_investment),
            (STATISTICS_TRIGGER.search, self._extract_statistics),
            (HABITS_TRIGGER.search, self._extract_habits),
            (ADD_TRIGGER.search, self._extract_add),
            (SEARCH_TRIGGER.search, self._extract_search),
        ]

    def extract(self, text: str, now: Optional[datetime] = None) -> Optional[FinancialAction]:
        """
        Extract a structured action from a message.

        Args:
            text: Raw user message
            now: Reference instant (defaults to the clock)

        Returns:
            A FinancialAction, or None when no rule applies
        """
        if not text or not text.strip():
            return None

        now = now or self.clock()
        normalized = normalize(text)

        for predicate, extractor in self.rules:
            if predicate(normalized):
                return extractor(text, normalized, now)

        # A bare currency-tagged amount with a known category reads as an expense
        if parse_amount(text) is not None and infer_category(text) != Category.OTHER:
            return self._extract_add(text, normalized, now)

        return None

    def categorize(self, description: str) -> Category:
        """Categorize a transaction description."""
        return infer_category(description)

    # Extractors

    def _extract_delete(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        amount = parse_amount(text)
        if amount is None:
            return None
        category = infer_category(text)
        return DeleteTransaction(
            match_amount=amount,
            match_category=category.value if category != Category.OTHER else None,
            match_date=parse_date(text, now),
        )

    def _extract_modify(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        # "change the 150 taxi to 120": the amount after to/à/en is the new value
        split = re.search(r"\b(to|into|à|en|par)\s+(?=\S*\d)", text, re.IGNORECASE)
        if split:
            new_amount = parse_amount(text[split.end():])
            match_amount = parse_amount(text[:split.start()])
        else:
            new_amount = parse_amount(text)
            match_amount = None
        if new_amount is None:
            return None

        category = infer_category(text[:split.start()] if split else text)
        return ModifyTransaction(
            match_amount=match_amount,
            match_category=category.value if category != Category.OTHER else None,
            match_date=parse_date(text, now),
            new_amount=new_amount,
        )

    def _extract_budget(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        amount = parse_amount(text)
        if amount is None:
            if LIST_WORDS.search(normalized):
                return ListBudgets()
            return None

        if re.search(r"\b(quarter|quarterly|trimestre|trimestriel)\b", normalized):
            period = BudgetPeriod.QUARTERLY
        elif re.search(r"\b(year|yearly|annual|annuel|par an)\b", normalized):
            period = BudgetPeriod.YEARLY
        else:
            period = BudgetPeriod.MONTHLY

        category = infer_category(text)
        if category == Category.OTHER:
            return CreateBudget(name="Budget", amount=amount, period=period)
        return CreateBudget(
            name=f"Budget {category.value}",
            amount=amount,
            category=category.value,
            period=period,
        )

    def _extract_goal(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        amount = parse_amount(text)
        if amount is None:
            if LIST_WORDS.search(normalized):
                return ListGoals()
            return None

        if re.search(r"\b(emergency|urgence)\b", normalized):
            goal_type = GoalType.EMERGENCY_FUND
        elif re.search(r"\b(debt|loan|dette|credit|rembours\w*|repay\w*)\b", normalized):
            goal_type = GoalType.DEBT_REPAYMENT
        elif re.search(r"\b(project|projet)\b", normalized):
            goal_type = GoalType.PROJECT
        else:
            goal_type = GoalType.SAVINGS

        deadline = parse_date(text, now)
        months = re.search(r"\b(?:in|within|dans|en)\s+(\d{1,3})\s+(months?|mois)\b", normalized)
        years = re.search(r"\b(?:in|within|dans|en)\s+(\d{1,2})\s+(years?|ans?|annees?)\b", normalized)
        if months:
            deadline = add_months(now, int(months.group(1)))
        elif years:
            deadline = add_months(now, 12 * int(years.group(1)))

        return CreateGoal(
            name=extract_description(text),
            target_amount=amount,
            deadline=deadline,
            goal_type=goal_type,
        )

    def _extract_recurring(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        amount = parse_amount(text)
        if amount is None:
            return None

        if re.search(r"\b(week|weekly|semaine|hebdomadaire)\b", normalized):
            frequency = Frequency.WEEKLY
        elif re.search(r"\b(quarter|quarterly|trimestre|trimestriel)\b", normalized):
            frequency = Frequency.QUARTERLY
        elif re.search(r"\b(year|yearly|annual|annee|annuel)\b", normalized):
            frequency = Frequency.YEARLY
        else:
            frequency = Frequency.MONTHLY

        return CreateRecurringTransaction(
            amount=amount,
            kind=infer_kind(normalized),
            category=infer_category(text).value,
            description=extract_description(text),
            frequency=frequency,
        )

    def _extract_investment(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        amount = parse_amount(text)
        if amount is None:
            return None

        type_patterns = [
            (InvestmentType.CRYPTO, r"\b(crypto|bitcoin|btc|ethereum)\b"),
            (InvestmentType.BONDS, r"\b(bonds?|obligations?)\b"),
            (InvestmentType.FUNDS, r"\b(funds?|etf|fonds|opcvm)\b"),
            (InvestmentType.REAL_ESTATE, r"\b(real estate|property|immobilier)\b"),
            (InvestmentType.STOCKS, r"\b(stocks?|shares|equity|bourse)\b"),
        ]
        investment_type = InvestmentType.OTHER
        for candidate, pattern in type_patterns:
            if re.search(pattern, normalized):
                investment_type = candidate
                break

        return CreateInvestment(
            name=extract_description(text),
            amount=amount,
            investment_type=investment_type,
        )

    def _extract_statistics(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        if LAST_MONTH_WORDS.search(normalized):
            previous = add_months(start_of_month(now), -1)
            return Statistics(period_start=previous, period_end=end_of_month(previous))
        return Statistics()

    def _extract_habits(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        months = re.search(r"\b(\d{1,2})\s+(months?|mois)\b", normalized)
        if months and int(months.group(1)) > 0:
            return AnalyzeHabits(months=int(months.group(1)))
        return AnalyzeHabits()

    def _extract_add(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        amount = parse_amount(text)
        if amount is None:
            return None
        return AddTransaction(
            amount=amount,
            kind=infer_kind(normalized),
            category=infer_category(text).value,
            description=extract_description(text),
            date=parse_date(text, now) or now,
        )

    def _extract_search(self, text: str, normalized: str, now: datetime) -> Optional[FinancialAction]:
        kind = None
        if re.search(r"\b(expenses?|spending|depenses?)\b", normalized):
            kind = TransactionKind.EXPENSE
        elif re.search(r"\b(income|incomes|revenus?)\b", normalized):
            kind = TransactionKind.INCOME

        category = infer_category(text)
        start_date = end_date = None
        if LAST_MONTH_WORDS.search(normalized):
            start_date = add_months(start_of_month(now), -1)
            end_date = end_of_month(start_date)
        elif THIS_MONTH_WORDS.search(normalized):
            start_date = start_of_month(now)
            end_date = end_of_month(now)

        return SearchTransactions(
            kind=kind,
            category=category.value if category not in (Category.OTHER, Category.SALARY) else None,
            start_date=start_date,
            end_date=end_date,
        )
