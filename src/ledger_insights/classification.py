"""Account classification by declared type label.

Account types are free text ("Current Asset", "Cost of Goods Sold"), so
statement sections are assigned by case-insensitive substring rules. The
rule table is evaluated in the order declared below.

An account can satisfy more than one section (a label like "Asset
Expense"). ``matching_sections`` reports every match and the statement
totals use it, so such an account is counted in each section it matches.
``classify_account`` returns only the first match.
"""

from dataclasses import dataclass

from ledger_insights.models import StatementCategory


@dataclass(frozen=True)
class ClassificationRule:
    """Assign ``category`` when the label contains any of ``keywords``."""

    category: StatementCategory
    keywords: tuple[str, ...]

    def matches(self, label: str) -> bool:
        lowered = label.lower()
        return any(keyword in lowered for keyword in self.keywords)


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(StatementCategory.ASSET, ("asset",)),
    ClassificationRule(StatementCategory.LIABILITY, ("liabilit",)),
    ClassificationRule(StatementCategory.EQUITY, ("equity",)),
    ClassificationRule(StatementCategory.REVENUE, ("revenue", "income", "sales")),
    ClassificationRule(StatementCategory.EXPENSE, ("expense", "cost", "overhead")),
)


def matching_sections(
    label: str | None,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> tuple[StatementCategory, ...]:
    """Return every category whose rule matches ``label``, in rule order."""
    if not label:
        return ()
    return tuple(rule.category for rule in rules if rule.matches(label))


def classify_account(
    label: str | None,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> StatementCategory:
    """Return the first matching category, or UNCLASSIFIED."""
    sections = matching_sections(label, rules)
    return sections[0] if sections else StatementCategory.UNCLASSIFIED
