"""Response composer: deterministic reply text for executed actions."""

from schemas.errors import ActionError, ActionNotFoundError, ActionValidationError
from schemas.ledger import Transaction
from schemas.records import (
    ActionRecord,
    TransactionsFound,
    TransactionAdded,
    TransactionModified,
    TransactionDeleted,
    BudgetCreated,
    GoalCreated,
    InvestmentCreated,
    RecurringTransactionCreated,
    GoalsListed,
    BudgetsListed,
    StatisticsComputed,
    HabitsAnalyzed,
)


class ResponseComposer:
    """Composes user-facing text from action records and errors."""

    FALLBACK_TEXT = (
        "I'm having trouble understanding right now. You can still tell me about an "
        "expense or income with its amount, for example: \"I spent 150 at the restaurant\"."
    )
    VOICE_NOT_UNDERSTOOD_TEXT = "Sorry, I could not understand the audio. Please try again."

    MAX_LISTED = 10

    def __init__(self, currency: str = "MAD"):
        self.currency = currency

    def money(self, amount: float) -> str:
        return f"{amount:,.2f} {self.currency}"

    def _transaction_line(self, transaction: Transaction) -> str:
        sign = "+" if transaction.kind.value == "income" else "-"
        return (
            f"- {transaction.date.strftime('%d/%m/%Y')}: {transaction.description} "
            f"({transaction.category}) {sign}{self.money(transaction.amount)}"
        )

    def compose(self, record: ActionRecord) -> str:
        """
        Compose the confirmation text for an executed action.

        Args:
            record: Outcome of the executed action

        Returns:
            Response text
        """
        if isinstance(record, TransactionAdded):
            t = record.transaction
            return (
                f"Recorded {t.kind.value} of {self.money(t.amount)} for "
                f"\"{t.description}\" in {t.category} on {t.date.strftime('%d/%m/%Y')}."
            )

        if isinstance(record, TransactionModified):
            before, after = record.before, record.after
            changes = []
            if before.amount != after.amount:
                changes.append(f"amount {self.money(before.amount)} -> {self.money(after.amount)}")
            if before.category != after.category:
                changes.append(f"category {before.category} -> {after.category}")
            if before.description != after.description:
                changes.append(f"description \"{before.description}\" -> \"{after.description}\"")
            if before.kind != after.kind:
                changes.append(f"type {before.kind.value} -> {after.kind.value}")
            if before.date != after.date:
                changes.append(
                    f"date {before.date.strftime('%d/%m/%Y')} -> {after.date.strftime('%d/%m/%Y')}"
                )
            summary = ", ".join(changes) if changes else "no visible change"
            return f"Updated transaction \"{after.description}\": {summary}."

        if isinstance(record, TransactionDeleted):
            t = record.transaction
            return (
                f"Deleted {t.kind.value} \"{t.description}\" of {self.money(t.amount)} "
                f"from {t.date.strftime('%d/%m/%Y')}."
            )

        if isinstance(record, TransactionsFound):
            if not record.transactions:
                return "No matching transactions found."
            lines = [f"Found {len(record.transactions)} transaction(s):"]
            lines.extend(self._transaction_line(t) for t in record.transactions[:self.MAX_LISTED])
            return "\n".join(lines)

        if isinstance(record, BudgetCreated):
            b = record.budget
            scope = f" for {b.category}" if b.category else ""
            return (
                f"Created {b.period.value} budget \"{b.name}\"{scope} of {self.money(b.amount)}, "
                f"running until {b.end_date.strftime('%d/%m/%Y')}."
            )

        if isinstance(record, GoalCreated):
            g = record.goal
            return (
                f"Created {g.goal_type.value.replace('_', ' ')} goal \"{g.name}\": "
                f"{self.money(g.target_amount)} by {g.deadline.strftime('%d/%m/%Y')}."
            )

        if isinstance(record, InvestmentCreated):
            i = record.investment
            return (
                f"Recorded investment \"{i.name}\" ({i.investment_type.value.replace('_', ' ')}) "
                f"of {self.money(i.amount)}."
            )

        if isinstance(record, RecurringTransactionCreated):
            r = record.recurring
            return (
                f"Created {r.frequency.value} recurring {r.kind.value} \"{r.description}\" of "
                f"{self.money(r.amount)}; next on {r.next_date.strftime('%d/%m/%Y')}."
            )

        if isinstance(record, GoalsListed):
            if not record.goals:
                return "You have no goals yet."
            lines = [f"You have {len(record.goals)} goal(s):"]
            for g in record.goals:
                lines.append(
                    f"- {g.name}: {self.money(g.current_amount)} / {self.money(g.target_amount)} "
                    f"by {g.deadline.strftime('%d/%m/%Y')}"
                )
            return "\n".join(lines)

        if isinstance(record, BudgetsListed):
            if not record.budgets:
                return "You have no budgets yet."
            lines = [f"You have {len(record.budgets)} budget(s):"]
            for b in record.budgets:
                scope = f" ({b.category})" if b.category else ""
                lines.append(f"- {b.name}{scope}: {self.money(b.amount)} {b.period.value}")
            return "\n".join(lines)

        if isinstance(record, StatisticsComputed):
            s = record.statistics
            lines = [
                f"From {s.period_start.strftime('%d/%m/%Y')} to {s.period_end.strftime('%d/%m/%Y')}:",
                f"- Income: {self.money(s.income)}",
                f"- Expenses: {self.money(s.expense)}",
                f"- Savings rate: {s.savings_rate:.1f}%",
            ]
            if s.breakdown:
                lines.append("Spending by category:")
                lines.extend(
                    f"- {share.category}: {self.money(share.amount)} ({share.percentage:.1f}%)"
                    for share in s.breakdown
                )
            return "\n".join(lines)

        if isinstance(record, HabitsAnalyzed):
            a = record.analysis
            lines = [
                f"Over the last {a.months} month(s) you spent on average "
                f"{self.money(a.average_monthly_expense)} per month."
            ]
            if a.top_category:
                lines.append(f"Your top spending category is {a.top_category}.")
            if a.fastest_growing_category:
                lines.append(f"{a.fastest_growing_category} is taking a growing share of your spending.")
            lines.extend(f"- {m.month}: {self.money(m.expense)}" for m in a.monthly_expenses)
            return "\n".join(lines)

        return "Done."

    def compose_error(self, error: ActionError) -> str:
        """Explain why an action could not be applied."""
        if isinstance(error, (ActionNotFoundError, ActionValidationError)):
            return f"{error}. Nothing was changed."
        return f"That request could not be applied: {error}. Nothing was changed."
