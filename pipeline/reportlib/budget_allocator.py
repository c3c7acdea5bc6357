"""Proportional prompt-space allocation across report categories."""

# Standard Library
import dataclasses


DEFAULT_TOTAL_BUDGET = 16000
DEFAULT_CHARS_PER_UNIT = 3
CATEGORY_ORDER = ("profile", "commits", "issues", "discussions")
DEFAULT_WEIGHTS = {
	"profile": 1.0,
	"commits": 4.0,
	"issues": 4.0,
	"discussions": 2.0,
}


#============================================
@dataclasses.dataclass(frozen=True)
class BudgetPlan:
	"""
	Per-category budget units computed once per report.
	"""
	total_units: int
	allocations: dict[str, int]
	chars_per_unit: int = DEFAULT_CHARS_PER_UNIT

	#============================================
	def units(self, category: str) -> int:
		return self.allocations.get(category, 0)

	#============================================
	def char_limit(self, category: str) -> int:
		"""
		Convert a category's budget units into a character count.
		"""
		return self.units(category) * self.chars_per_unit

	#============================================
	def trim(self, category: str, text: str) -> str:
		"""
		Cut text to the category's character limit.
		"""
		limit = self.char_limit(category)
		if limit <= 0:
			return ""
		return (text or "")[:limit]

	#============================================
	def present_categories(self) -> list[str]:
		return [name for name, units in self.allocations.items() if units > 0]


#============================================
def allocate_budget(
	total_units: int,
	weights: dict[str, float | None],
	chars_per_unit: int = DEFAULT_CHARS_PER_UNIT,
) -> BudgetPlan:
	"""
	Split a fixed budget across categories in proportion to their weights.

	Categories whose weight is None are absent: they get zero units and are
	left out of the denominator, so present categories grow to fill the
	space of missing ones.

	Args:
		total_units: total budget in generation-token units.
		weights: category name -> weight, or None when the category has no
			data.
		chars_per_unit: multiplier from units to characters for trimming.

	Returns:
		BudgetPlan with floor(T * w / sum(w)) units per present category.
	"""
	present_total = 0.0
	for weight in weights.values():
		if weight is None:
			continue
		if weight < 0:
			raise ValueError(f"budget weights must be non-negative; got {weight}")
		present_total += weight
	allocations: dict[str, int] = {}
	for category, weight in weights.items():
		if (weight is None) or (present_total <= 0):
			allocations[category] = 0
			continue
		allocations[category] = int(total_units * weight // present_total)
	plan = BudgetPlan(
		total_units=total_units,
		allocations=allocations,
		chars_per_unit=chars_per_unit,
	)
	return plan


#============================================
def weights_for_texts(
	texts: dict[str, str],
	weight_table: dict[str, float] | None = None,
) -> dict[str, float | None]:
	"""
	Build the allocator input from category texts, marking empty ones absent.
	"""
	table = weight_table or DEFAULT_WEIGHTS
	weights: dict[str, float | None] = {}
	for category, text in texts.items():
		if (text or "").strip():
			weights[category] = float(table.get(category, 1.0))
		else:
			weights[category] = None
	return weights


#============================================
def fit_texts_to_budget(
	texts: dict[str, str],
	total_units: int = DEFAULT_TOTAL_BUDGET,
	chars_per_unit: int = DEFAULT_CHARS_PER_UNIT,
	weight_table: dict[str, float] | None = None,
) -> dict[str, str]:
	"""
	Allocate a plan for the given category texts and trim each to its share.
	"""
	weights = weights_for_texts(texts, weight_table)
	plan = allocate_budget(total_units, weights, chars_per_unit=chars_per_unit)
	fitted = {}
	for category, text in texts.items():
		fitted[category] = plan.trim(category, text)
	return fitted
