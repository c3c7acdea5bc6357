"""Record types shared by the fetch, analysis and aggregation stages."""

# Standard Library
import dataclasses
import enum
from datetime import datetime
from datetime import timezone


#============================================
class RecordKind(enum.Enum):
	COMMIT = "commit"
	ISSUE = "issue"
	DISCUSSION = "discussion"
	META = "meta"


#============================================
@dataclasses.dataclass(frozen=True)
class ActivityComment:
	"""
	One comment on an issue or discussion thread.
	"""
	author: str
	body: str


#============================================
@dataclasses.dataclass(frozen=True)
class GitActivityRecord:
	"""
	One unit of evidence about a contributor's work.

	Identity fields never change after creation. Per-item analysis fills
	summary by returning a copy through with_summary().
	"""
	kind: RecordKind
	contributor: str
	title: str
	source_url: str
	summary: str = ""
	occurred_at: datetime | None = None
	body: str = ""
	labels: tuple[str, ...] = ()
	comments: tuple[ActivityComment, ...] = ()
	upvotes: int = 0

	#============================================
	def with_summary(self, summary: str) -> "GitActivityRecord":
		"""
		Return a copy of this record carrying an analysis summary.
		"""
		return dataclasses.replace(self, summary=summary)


#============================================
@dataclasses.dataclass(frozen=True)
class RepoProfile:
	"""
	Repository metadata used for the profile section of a report.
	"""
	full_name: str
	description: str = ""
	readme_text: str = ""


#============================================
def parse_iso(ts: str) -> datetime | None:
	"""
	Parse an ISO timestamp into a timezone-aware datetime, or None.
	"""
	if not ts:
		return None
	try:
		parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
	except ValueError:
		return None
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


#============================================
def first_line(text: str) -> str:
	"""
	Return the first non-empty line of a commit message or title.
	"""
	for line in (text or "").splitlines():
		clean = line.strip()
		if clean:
			return clean
	return ""


#============================================
def commit_payload_to_record(payload: dict) -> GitActivityRecord | None:
	"""
	Map a REST commit payload to a record.

	Commits without a linked GitHub author cannot be attributed and are
	skipped by returning None.
	"""
	author = payload.get("author") or {}
	login = str(author.get("login") or "").strip()
	if not login:
		return None
	commit_data = payload.get("commit") or {}
	author_data = commit_data.get("author") or {}
	committer_data = commit_data.get("committer") or {}
	event_time = author_data.get("date") or committer_data.get("date") or ""
	record = GitActivityRecord(
		kind=RecordKind.COMMIT,
		contributor=login,
		title=str(commit_data.get("message") or ""),
		source_url=str(payload.get("html_url") or ""),
		occurred_at=parse_iso(event_time),
	)
	return record


#============================================
def issue_payload_to_record(
	payload: dict,
	comments: list[dict],
	target_person: str | None = None,
) -> GitActivityRecord:
	"""
	Map a REST issue payload plus its comments to a record.

	When a target person is given the record is attributed to them, so
	every issue they are involved in lands in their bundle.
	"""
	user = payload.get("user") or {}
	creator = str(user.get("login") or "").strip()
	labels = []
	for label in payload.get("labels") or []:
		if isinstance(label, dict):
			name = str(label.get("name") or "").strip()
		else:
			name = str(label).strip()
		if name:
			labels.append(name)
	comment_items = []
	for comment in comments:
		comment_user = comment.get("user") or {}
		comment_items.append(
			ActivityComment(
				author=str(comment_user.get("login") or ""),
				body=str(comment.get("body") or ""),
			)
		)
	record = GitActivityRecord(
		kind=RecordKind.ISSUE,
		contributor=target_person or creator,
		title=str(payload.get("title") or ""),
		source_url=str(payload.get("html_url") or ""),
		occurred_at=parse_iso(payload.get("updated_at") or payload.get("created_at") or ""),
		body=str(payload.get("body") or ""),
		labels=tuple(labels),
		comments=tuple(comment_items),
	)
	return record


#============================================
def discussion_node_to_record(node: dict) -> GitActivityRecord | None:
	"""
	Map a GraphQL discussion node to a record.
	"""
	if not isinstance(node, dict):
		return None
	author = node.get("author") or {}
	login = str(author.get("login") or "").strip()
	url = str(node.get("url") or "").strip()
	if not url:
		return None
	comment_items = []
	comment_edges = (node.get("comments") or {}).get("edges") or []
	for edge in comment_edges:
		if not isinstance(edge, dict):
			continue
		comment = edge.get("node") or {}
		comment_author = comment.get("author") or {}
		comment_items.append(
			ActivityComment(
				author=str(comment_author.get("login") or ""),
				body=str(comment.get("body") or ""),
			)
		)
	record = GitActivityRecord(
		kind=RecordKind.DISCUSSION,
		contributor=login,
		title=str(node.get("title") or ""),
		source_url=url,
		occurred_at=parse_iso(node.get("createdAt") or ""),
		body=str(node.get("body") or ""),
		comments=tuple(comment_items),
		upvotes=int(node.get("upvoteCount") or 0),
	)
	return record
