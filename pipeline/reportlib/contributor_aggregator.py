"""Merge analysed records into one bundle per contributor."""

# Standard Library
import dataclasses

# local repo modules
from reportlib.activity_records import GitActivityRecord
from reportlib.report_errors import NoActivityProcessedError


#============================================
@dataclasses.dataclass
class ContributorBundle:
	"""
	Newline-joined urls and summaries for one contributor.

	Line i of urls_joined belongs with line i of summaries_joined.
	"""
	contributor: str
	urls_joined: str
	summaries_joined: str
	record_count: int = 1

	#============================================
	def append(self, source_url: str, summary: str) -> None:
		self.urls_joined += "\n" + source_url
		self.summaries_joined += "\n" + summary
		self.record_count += 1

	#============================================
	def urls(self) -> list[str]:
		return self.urls_joined.split("\n")


#============================================
def _single_line(text: str) -> str:
	return " ".join((text or "").split())


#============================================
def fold_by_contributor(records: list[GitActivityRecord]) -> dict[str, ContributorBundle]:
	"""
	Fold records into bundles keyed by contributor, in input order.

	Summaries are collapsed to one line each so the two joined strings
	stay aligned line for line.
	"""
	bundles: dict[str, ContributorBundle] = {}
	for record in records:
		summary = _single_line(record.summary)
		bundle = bundles.get(record.contributor)
		if bundle is None:
			bundles[record.contributor] = ContributorBundle(
				contributor=record.contributor,
				urls_joined=record.source_url,
				summaries_joined=summary,
			)
			continue
		bundle.append(record.source_url, summary)
	return bundles


#============================================
def aggregate_contributions(records: list[GitActivityRecord]) -> dict[str, ContributorBundle]:
	"""
	Fold records and fail when nothing was processed.

	Raises:
		NoActivityProcessedError: when the fold is empty.
	"""
	bundles = fold_by_contributor(records)
	if not bundles:
		raise NoActivityProcessedError("no activity processed")
	return bundles


#============================================
def join_bundles(bundles: dict[str, ContributorBundle]) -> str:
	"""
	Render every bundle as "url summary" lines, contributor by contributor.
	"""
	lines = []
	for bundle in bundles.values():
		for url, summary in zip(bundle.urls(), bundle.summaries_joined.split("\n")):
			lines.append(f"{url} {summary}".strip())
	return "\n".join(lines)
