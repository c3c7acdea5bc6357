"""GitHub-backed data source for the weekly report stages."""

# Standard Library
from datetime import datetime
from datetime import timedelta
from datetime import timezone

import github

# local repo modules
from reportlib import activity_records
from reportlib.report_errors import InvalidRepositoryError


DISCUSSION_EXTRA_DAYS = 30


#============================================
def _log(logger, message: str) -> None:
	if logger is not None:
		logger(message)


#============================================
def format_search_date(value: datetime) -> str:
	"""
	Format a datetime for GitHub search qualifiers.
	"""
	return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


#============================================
def build_issue_query(owner: str, repo: str, user: str | None, since: datetime) -> str:
	query = f"repo:{owner}/{repo} is:issue"
	if user:
		query += f" involves:{user}"
	query += f" updated:>{format_search_date(since)}"
	return query


#============================================
def build_discussion_query(owner: str, repo: str, user: str | None, since: datetime) -> str:
	query = f"repo:{owner}/{repo}"
	if user:
		query += f" involves:{user}"
	query += f" updated:>{format_search_date(since)}"
	return query


#============================================
class GitHubActivitySource:
	"""
	Map GitHubClient payloads into activity records.
	"""

	def __init__(self, client, log_fn=None, now_fn=None):
		self.client = client
		self.log_fn = log_fn
		self.now_fn = now_fn or (lambda: datetime.now(timezone.utc))

	#============================================
	def window_start(self, days: int) -> datetime:
		return self.now_fn() - timedelta(days=days)

	#============================================
	def fetch_profile(self, owner: str, repo: str) -> activity_records.RepoProfile:
		"""
		Fetch repository description and README.

		Raises:
			InvalidRepositoryError: when the repository is missing or private.
		"""
		full_name = f"{owner}/{repo}"
		try:
			payload = self.client.get_repo_profile(full_name)
		except github.GithubException as error:
			_log(self.log_fn, f"Profile fetch failed for {full_name}: {error}")
			raise InvalidRepositoryError() from error
		if not payload:
			raise InvalidRepositoryError()
		profile = activity_records.RepoProfile(
			full_name=payload.get("full_name") or full_name,
			description=payload.get("description") or "",
			readme_text=payload.get("readme_text") or "",
		)
		return profile

	#============================================
	def fetch_commits(
		self,
		owner: str,
		repo: str,
		user: str | None,
		days: int,
	) -> list[activity_records.GitActivityRecord]:
		"""
		Fetch commits in the window, filtered to one author when given.
		"""
		payloads = self.client.list_commits(
			f"{owner}/{repo}",
			self.window_start(days),
			self.now_fn(),
			author=user or "",
		)
		records = []
		for payload in payloads:
			record = activity_records.commit_payload_to_record(payload)
			if record is None:
				_log(self.log_fn, f"Skipping commit without GitHub author: {payload.get('sha', '')}")
				continue
			records.append(record)
		return records

	#============================================
	def fetch_weekly_commit_log(
		self,
		owner: str,
		repo: str,
		days: int,
	) -> list[activity_records.GitActivityRecord]:
		"""
		Fetch every attributed commit in the window, for the repository log.
		"""
		return self.fetch_commits(owner, repo, None, days)

	#============================================
	def fetch_commit_patch(self, record: activity_records.GitActivityRecord) -> str:
		return self.client.get_commit_patch(record.source_url)

	#============================================
	def fetch_issues(
		self,
		owner: str,
		repo: str,
		user: str | None,
		days: int,
	) -> list[activity_records.GitActivityRecord]:
		"""
		Search issues updated in the window and attach their comments.
		"""
		query = build_issue_query(owner, repo, user, self.window_start(days))
		_log(self.log_fn, f"Issue search: {query}")
		records = []
		for payload in self.client.search_issues(query):
			number = payload.get("number")
			comments = []
			if number is not None and payload.get("comments", 0):
				comments = self.client.list_issue_comments(f"{owner}/{repo}", number)
			records.append(
				activity_records.issue_payload_to_record(payload, comments, target_person=user)
			)
		return records

	#============================================
	def fetch_discussions(
		self,
		owner: str,
		repo: str,
		user: str | None,
		days: int,
	) -> list[activity_records.GitActivityRecord]:
		"""
		Search discussions updated in a widened window.
		"""
		since = self.window_start(days + DISCUSSION_EXTRA_DAYS)
		query = build_discussion_query(owner, repo, user, since)
		_log(self.log_fn, f"Discussion search: {query}")
		records = []
		for node in self.client.search_discussions(query):
			record = activity_records.discussion_node_to_record(node)
			if record is not None:
				records.append(record)
		return records
