"""Sparse/default/turbo sizing for per-item analysis."""

# Standard Library
import dataclasses
import enum


COMMIT_TURBO_THRESHOLD = 6
ISSUE_TURBO_THRESHOLD = 4
SPARSE_MAX_COUNT = 2


#============================================
class VolumeTier(enum.Enum):
	SKIP = "skip"
	SPARSE = "sparse"
	DEFAULT = "default"
	TURBO = "turbo"


#============================================
@dataclasses.dataclass(frozen=True)
class ItemBudget:
	"""
	Squeeze limits applied to one record before its analysis call.

	text_limit is in characters for commits and issues and in tokens for
	discussions, matching the squeezer each category uses.
	"""
	body_words: int
	body_split: float
	comment_words: int
	comment_split: float
	text_limit: int
	max_tokens: int


_COMMIT_BUDGETS = {
	VolumeTier.SPARSE: ItemBudget(0, 1.0, 0, 1.0, 32000, 192),
	VolumeTier.DEFAULT: ItemBudget(0, 1.0, 0, 1.0, 24000, 128),
	VolumeTier.TURBO: ItemBudget(0, 1.0, 0, 1.0, 12000, 96),
}
_ISSUE_BUDGETS = {
	VolumeTier.SPARSE: ItemBudget(600, 0.7, 300, 1.0, 32000, 192),
	VolumeTier.DEFAULT: ItemBudget(400, 0.7, 200, 1.0, 24000, 128),
	VolumeTier.TURBO: ItemBudget(250, 0.7, 120, 1.0, 12000, 96),
}
_DISCUSSION_BUDGETS = {
	VolumeTier.SPARSE: ItemBudget(500, 0.6, 300, 0.6, 12000, 256),
	VolumeTier.DEFAULT: ItemBudget(500, 0.6, 300, 0.6, 12000, 256),
	VolumeTier.TURBO: ItemBudget(500, 0.6, 300, 0.6, 12000, 256),
}
_BUDGETS_BY_CATEGORY = {
	"commits": _COMMIT_BUDGETS,
	"issues": _ISSUE_BUDGETS,
	"discussions": _DISCUSSION_BUDGETS,
}


#============================================
def select_volume_tier(count: int, turbo_threshold: int) -> VolumeTier:
	"""
	Pick the tier for a category from its record count.

	Args:
		count: number of records fetched for the category.
		turbo_threshold: smallest count treated as high volume.

	Returns:
		SKIP for 0, SPARSE for 1-2, TURBO at or above the threshold,
		DEFAULT otherwise.
	"""
	if count <= 0:
		return VolumeTier.SKIP
	if count <= SPARSE_MAX_COUNT:
		return VolumeTier.SPARSE
	if count >= turbo_threshold:
		return VolumeTier.TURBO
	return VolumeTier.DEFAULT


#============================================
def item_budget_for(category: str, tier: VolumeTier) -> ItemBudget:
	"""
	Return the per-item squeeze limits for a category and tier.
	"""
	if tier == VolumeTier.SKIP:
		raise ValueError(f"no item budget for skipped category {category}")
	budgets = _BUDGETS_BY_CATEGORY.get(category)
	if budgets is None:
		raise ValueError(f"unknown category: {category}")
	return budgets[tier]
