"""
Gradebook Weight Setup
Distributes auto weights across a gradebook tree, computes each item's overall
weight, and validates weight totals per level.
"""
from typing import List, Optional, Sequence, Tuple

from grader.errors import WeightExceedsLimitError, WeightZeroRequiredError
from grader.log import get_logger
from grader.schemas import GradebookSetupItem, GradebookWeightTotals

logger = get_logger(__name__)

WEIGHT_TOLERANCE = 0.01


def _is_auto_weighted_zero(children: Optional[List[GradebookSetupItem]]) -> bool:
    """A weightless category with no regular leaves anywhere below it counts as 0%."""
    children = children or []
    if any(not child.is_category and not child.extra_credit for child in children):
        return False
    nested = [child for child in children if child.is_category]
    if not nested:
        return True
    return all(child.auto_weighted_zero for child in nested)


def calculate_adjusted_weights(items: Sequence[GradebookSetupItem]) -> List[GradebookSetupItem]:
    """
    Resolves the weight each item actually carries at its level.

    Items with a weight keep it. Auto-weighted items (weight None) share the
    remaining max(0, 100 - specified) equally. Extra-credit items keep their
    own weight and take no part in the distribution. Categories with nothing
    but extra credit below them are auto-weighted to 0.

    Returns:
        Copies of the items (recursively) with adjusted_weight filled in.
    """
    processed: List[GradebookSetupItem] = []
    for item in items:
        children = (
            calculate_adjusted_weights(item.grade_items)
            if item.grade_items is not None
            else None
        )
        node = item.model_copy(update={
            "grade_items": children,
            "adjusted_weight": None,
            "overall_weight": None,
            "weight_explanation": None,
            "auto_weighted_zero": False,
        })
        if node.is_category and node.weight is None:
            node.auto_weighted_zero = _is_auto_weighted_zero(children)
        processed.append(node)

    participating = [
        node for node in processed
        if not node.extra_credit and not node.auto_weighted_zero
    ]
    specified_total = sum(node.weight for node in participating if node.weight is not None)
    auto_weighted = [node for node in participating if node.weight is None]
    remaining = max(0, 100 - specified_total)
    share = remaining / len(auto_weighted) if auto_weighted else 0
    if auto_weighted:
        logger.debug("Distributing %.2f%% across %d auto-weighted items", remaining, len(auto_weighted))

    for node in processed:
        if node.auto_weighted_zero:
            node.adjusted_weight = 0
        elif node.extra_credit or node.weight is not None:
            node.adjusted_weight = node.weight
        else:
            node.adjusted_weight = share if share > 0 else None

    return processed


def _format_weight(weight: Optional[float]) -> str:
    return "100%" if weight is None else f"{weight:.2f}%"


def _assign_overall_weights(
    items: Sequence[GradebookSetupItem],
    ancestors: Tuple[GradebookSetupItem, ...],
) -> None:
    for item in items:
        if item.is_category:
            item.overall_weight = None
            item.weight_explanation = None
            _assign_overall_weights(item.grade_items or [], ancestors + (item,))
            continue

        if item.adjusted_weight is None:
            item.overall_weight = None
            item.weight_explanation = None
            continue

        overall = item.adjusted_weight / 100
        for category in ancestors:
            if category.adjusted_weight is not None:
                overall *= category.adjusted_weight / 100
        item.overall_weight = overall * 100

        parts = [f"{category.name} ({_format_weight(category.adjusted_weight)})" for category in ancestors]
        parts.append(f"{item.name} ({_format_weight(item.adjusted_weight)})")
        item.weight_explanation = f"{' × '.join(parts)} = {item.overall_weight:.2f}%"


def _walk(items: Sequence[GradebookSetupItem], ancestors=()):
    for item in items:
        yield item, ancestors
        if item.is_category:
            yield from _walk(item.grade_items or [], ancestors + (item,))


def _category_overall_weight(category: GradebookSetupItem, ancestors) -> float:
    if category.adjusted_weight is None:
        return 0
    overall = category.adjusted_weight / 100
    for parent in ancestors:
        if parent.adjusted_weight is None:
            return 0
        overall *= parent.adjusted_weight / 100
    return overall * 100


def calculate_overall_weights(items: Sequence[GradebookSetupItem]) -> GradebookWeightTotals:
    """
    Fills in overall_weight and weight_explanation for every leaf, in place.

    Overall weight = item adjusted weight x every ancestor category's
    adjusted weight (a category without one counts as 100%).

    Args:
        items: Output of calculate_adjusted_weights.

    Returns:
        Totals for the whole tree; calculated_total is 100 + extra credit.
    """
    _assign_overall_weights(items, ())

    leaves = [item for item, _ in _walk(items) if not item.is_category]
    categories = [(item, ancestors) for item, ancestors in _walk(items) if item.is_category]

    base_total = sum(leaf.overall_weight or 0 for leaf in leaves if not leaf.extra_credit)
    extra_credit_items = [
        leaf for leaf in leaves
        if leaf.extra_credit and leaf.overall_weight is not None
    ]

    extra_credit_categories = []
    extra_from_categories = 0
    for category, ancestors in categories:
        if not category.extra_credit:
            continue
        weight = _category_overall_weight(category, ancestors)
        extra_from_categories += weight
        extra_credit_categories.append(category.model_copy(update={"overall_weight": weight}))

    extra_credit_total = sum(leaf.overall_weight for leaf in extra_credit_items) + extra_from_categories

    return GradebookWeightTotals(
        base_total=base_total,
        extra_credit_total=extra_credit_total,
        calculated_total=100 + extra_credit_total,
        total_max_grade=sum(leaf.max_grade or 0 for leaf in leaves),
        extra_credit_items=extra_credit_items,
        extra_credit_categories=extra_credit_categories,
    )


def validate_gradebook_weights(
    items: Sequence[GradebookSetupItem],
    level_name: str = "course level",
    level_weight: Optional[float] = None,
    error_prefix: str = "Operation",
) -> None:
    """
    Validates weight totals at one level and, recursively, in every category.

    Rules (extra-credit items ignored):
    - A level with no regular items must itself be auto-weighted.
    - With auto-weighted siblings, specified weights must not exceed 100%.
    - Without them, specified weights must total exactly 100% (within 0.01).

    Raises:
        WeightZeroRequiredError: If a level without regular items has a weight.
        WeightExceedsLimitError: If the totals break the rules above.
    """
    regular = [item for item in items if not item.extra_credit]

    if not regular:
        if level_weight is not None:
            raise WeightZeroRequiredError(
                f"Level {level_name} must be auto-weighted when no non-extra-credit items exist"
            )
        return

    specified_total = sum(item.weight for item in regular if item.weight is not None)
    has_auto_weighted = any(item.weight is None for item in regular)

    if has_auto_weighted:
        if specified_total > 100 + WEIGHT_TOLERANCE:
            raise WeightExceedsLimitError(
                f"{error_prefix} would result in total specified weight of {specified_total:.2f}% "
                f"at {level_name}. When auto-weighted items exist, specified weights must not exceed 100%."
            )
    elif abs(specified_total - 100) > WEIGHT_TOLERANCE:
        raise WeightExceedsLimitError(
            f"{error_prefix} would result in total weight of {specified_total:.2f}% "
            f"at {level_name}. Total must equal exactly 100%."
        )

    for item in items:
        if item.is_category:
            validate_gradebook_weights(
                item.grade_items or [],
                f"{level_name} > {item.name}",
                item.weight,
                error_prefix,
            )
