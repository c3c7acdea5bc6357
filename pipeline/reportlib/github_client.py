import random
import threading
import time
from datetime import datetime
from datetime import timezone

import github
import requests

# local repo modules
from reportlib import github_cache


GRAPHQL_URL = "https://api.github.com/graphql"
HTTP_TIMEOUT_SECONDS = 30
DISCUSSION_SEARCH_QUERY = """
query($searchQuery: String!) {
	search(query: $searchQuery, type: DISCUSSION, first: 100) {
		edges {
			node {
				... on Discussion {
					title
					url
					body
					author { login }
					createdAt
					upvoteCount
					comments(first: 100) {
						edges {
							node {
								author { login }
								body
							}
						}
					}
				}
			}
		}
	}
}
"""


#============================================
class RateLimitError(RuntimeError):
	"""
	Raised when GitHub API rate limits block further requests.
	"""


#============================================
class GitHubClient:
	"""
	Thin PyGithub wrapper for the weekly report fetch stages.

	REST resources go through PyGithub; commit patches and the discussion
	GraphQL search go through requests. Every query result is cached on
	disk by GitHubQueryCache.
	"""

	def __init__(
		self,
		token: str,
		log_fn=None,
		cache_dir: str = "out/cache/github_api",
		cache_ttl_seconds: int = 60 * 60,
	):
		self.token = token
		self.log_fn = log_fn
		self.jitter_seconds = 1.0
		self._rate_check_count = 0
		self._low_remaining_threshold = 5
		self._max_proactive_sleep_seconds = 10
		self._counter_lock = threading.Lock()
		self._api_call_count = 0
		self._api_calls_by_context: dict[str, int] = {}
		self._cache_hit_count = 0
		self._cache_miss_count = 0
		self.cache = github_cache.GitHubQueryCache(
			cache_dir=cache_dir,
			default_ttl_seconds=cache_ttl_seconds,
		)
		self.client = self._build_github_client(token)

	#============================================
	def _build_github_client(self, token: str):
		"""
		Create Github client with retry disabled.
		"""
		if token:
			return github.Github(auth=github.Auth.Token(token), retry=None)
		return github.Github(retry=None)

	#============================================
	def log(self, message: str) -> None:
		"""
		Emit one log line when logger is configured.
		"""
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def record_api_call(self, context: str) -> None:
		"""
		Track one outbound GitHub API call.
		"""
		with self._counter_lock:
			self._api_call_count += 1
			self._api_calls_by_context[context] = self._api_calls_by_context.get(context, 0) + 1

	#============================================
	def api_usage_snapshot(self) -> dict:
		"""
		Return API/caching counters for reporting.
		"""
		with self._counter_lock:
			return {
				"api_call_count": self._api_call_count,
				"api_calls_by_context": dict(self._api_calls_by_context),
				"cache_hit_count": self._cache_hit_count,
				"cache_miss_count": self._cache_miss_count,
			}

	#============================================
	def normalize_datetime(self, value: datetime) -> datetime:
		"""
		Normalize datetime to timezone-aware UTC.
		"""
		if value.tzinfo is None:
			return value.replace(tzinfo=timezone.utc)
		return value.astimezone(timezone.utc)

	#============================================
	def parse_rate_limit_reset(self, reset_value) -> datetime:
		"""
		Normalize PyGithub reset values to timezone-aware UTC datetime.
		"""
		if isinstance(reset_value, datetime):
			return self.normalize_datetime(reset_value)
		if isinstance(reset_value, (int, float)):
			return datetime.fromtimestamp(float(reset_value), tz=timezone.utc)
		if isinstance(reset_value, str):
			return datetime.fromisoformat(reset_value.replace("Z", "+00:00"))
		raise RuntimeError(f"Unsupported rate-limit reset value: {reset_value!r}")

	#============================================
	def get_core_rate_limit_snapshot(self) -> tuple[int, datetime]:
		"""
		Read core rate-limit remaining/reset across PyGithub versions.
		"""
		self.record_api_call("GET /rate_limit")
		overview = self.client.get_rate_limit()
		rate_limit = getattr(overview, "core", None)
		if rate_limit is None:
			resources = getattr(overview, "resources", None)
			if isinstance(resources, dict):
				rate_limit = resources.get("core")
			elif resources is not None:
				rate_limit = getattr(resources, "core", None)
		if rate_limit is None:
			raise RuntimeError("Rate limit data does not expose core resource fields.")
		remaining = int(getattr(rate_limit, "remaining"))
		reset_time = self.parse_rate_limit_reset(getattr(rate_limit, "reset"))
		return remaining, reset_time

	#============================================
	def maybe_wait_for_rate_limit(self, context: str, force: bool = False) -> None:
		"""
		Sleep until reset when rate limit is very low.
		"""
		self._rate_check_count += 1
		if (not force) and (self._rate_check_count % 15 != 0):
			return
		try:
			remaining, reset_time = self.get_core_rate_limit_snapshot()
		except (RuntimeError, github.GithubException) as error:
			self.log(f"Rate limit check ({context}) unavailable: {error}")
			return
		self.log(
			f"Rate limit check ({context}): remaining={remaining}, "
			+ f"reset_at={reset_time.isoformat()}"
		)
		if remaining > self._low_remaining_threshold:
			return
		sleep_seconds = int((reset_time - datetime.now(timezone.utc)).total_seconds()) + 1
		if sleep_seconds <= 0:
			return
		if sleep_seconds > self._max_proactive_sleep_seconds:
			self.log(
				"Rate limit is low, but proactive wait exceeds cap "
				+ f"({sleep_seconds}s > {self._max_proactive_sleep_seconds}s); "
				+ "skipping proactive sleep and continuing."
			)
			return
		self.log(
			f"Rate limit is low ({remaining}); sleeping {sleep_seconds}s until reset."
		)
		time.sleep(sleep_seconds)

	#============================================
	def sleep_request_jitter(self) -> None:
		"""
		Add small random jitter before API calls.
		"""
		if self.jitter_seconds <= 0:
			return
		time.sleep(random.random() * self.jitter_seconds)

	#============================================
	def call_with_jitter(self, context: str, call_fn):
		"""
		Run one API call after jitter, translating GitHub errors.
		"""
		self.sleep_request_jitter()
		try:
			self.record_api_call(context)
			return call_fn()
		except github.GithubException as error:
			self.raise_from_github_error(error, context)

	#============================================
	def cached_query(
		self,
		category: str,
		query: dict,
		context: str,
		call_fn,
		ttl_seconds: int | None = None,
	):
		"""
		Resolve one query through filesystem cache plus API fallback.
		"""
		cached = self.cache.get(category, query, ttl_seconds=ttl_seconds)
		if cached is not None:
			with self._counter_lock:
				self._cache_hit_count += 1
			self.log(f"GitHub cache hit [{category}]")
			return cached
		with self._counter_lock:
			self._cache_miss_count += 1
		self.log(f"GitHub cache miss [{category}]")
		data = self.call_with_jitter(context, call_fn)
		if data is not None:
			self.cache.set(category, query, data)
		return data

	#============================================
	def raise_from_github_error(self, error: Exception, context: str) -> None:
		"""
		Raise a human-readable rate-limit error or re-raise original.
		"""
		status = getattr(error, "status", None)
		if status != 403:
			raise error
		reset_text = "unknown"
		remaining_text = "unknown"
		try:
			remaining, reset_time = self.get_core_rate_limit_snapshot()
			reset_text = reset_time.isoformat()
			remaining_text = str(remaining)
		except (RuntimeError, github.GithubException):
			self.log(f"Rate limit snapshot unavailable while {context}.")
		raise RateLimitError(
			"GitHub API rate limit exceeded while "
			+ f"{context}; remaining={remaining_text}; reset_at={reset_text}. "
			+ "Provide settings.yaml github.token for higher limits."
		)

	#============================================
	def _http_headers(self, accept: str) -> dict:
		headers = {"Accept": accept}
		if self.token:
			headers["Authorization"] = f"Bearer {self.token}"
		return headers

	#============================================
	def get_repo_profile(self, repo_full_name: str) -> dict | None:
		"""
		Get repository description and README text, or None when the
		repository is missing or private.
		"""
		self.maybe_wait_for_rate_limit(f"get_repo_profile {repo_full_name}", force=True)
		return self.cached_query(
			"repo_profile",
			{"repo_full_name": repo_full_name},
			f"GET /repos/{repo_full_name}",
			lambda: self._get_repo_profile_live(repo_full_name),
		)

	#============================================
	def _get_repo_profile_live(self, repo_full_name: str) -> dict | None:
		try:
			repo_obj = self.client.get_repo(repo_full_name)
		except github.UnknownObjectException:
			return None
		raw_data = getattr(repo_obj, "raw_data", {}) or {}
		readme_text = ""
		self.record_api_call(f"GET /repos/{repo_full_name}/readme")
		try:
			readme = repo_obj.get_readme()
			readme_text = readme.decoded_content.decode("utf-8", errors="replace")
		except github.UnknownObjectException:
			self.log(f"No README found for {repo_full_name}")
		return {
			"full_name": str(raw_data.get("full_name") or repo_full_name),
			"description": str(raw_data.get("description") or ""),
			"readme_text": readme_text,
		}

	#============================================
	def list_commits(
		self,
		repo_full_name: str,
		since: datetime,
		until: datetime,
		author: str = "",
	) -> list[dict]:
		"""
		List repository commits inside time window, optionally by author.
		"""
		self.maybe_wait_for_rate_limit(f"list_commits {repo_full_name}")
		since_iso = self.normalize_datetime(since).isoformat()
		until_iso = self.normalize_datetime(until).isoformat()
		return self.cached_query(
			"list_commits",
			{
				"repo_full_name": repo_full_name,
				"since": since_iso,
				"until": until_iso,
				"author": author,
			},
			f"GET /repos/{repo_full_name}/commits",
			lambda: self._list_commits_live(repo_full_name, since, until, author),
		)

	#============================================
	def _list_commits_live(
		self,
		repo_full_name: str,
		since: datetime,
		until: datetime,
		author: str,
	) -> list[dict]:
		repo_obj = self.client.get_repo(repo_full_name)
		kwargs = {"since": since, "until": until}
		if author:
			kwargs["author"] = author
		return [
			getattr(commit_obj, "raw_data", {}) or {}
			for commit_obj in repo_obj.get_commits(**kwargs)
		]

	#============================================
	def search_issues(self, query: str) -> list[dict]:
		"""
		Run one issue search query and return raw issue payloads.
		"""
		self.maybe_wait_for_rate_limit("search_issues")
		return self.cached_query(
			"search_issues",
			{"query": query},
			"GET /search/issues",
			lambda: [
				getattr(issue_obj, "raw_data", {}) or {}
				for issue_obj in self.client.search_issues(query)
			],
		)

	#============================================
	def list_issue_comments(self, repo_full_name: str, issue_number: int) -> list[dict]:
		"""
		List comments for one issue.
		"""
		return self.cached_query(
			"issue_comments",
			{"repo_full_name": repo_full_name, "number": int(issue_number)},
			f"GET /repos/{repo_full_name}/issues/{issue_number}/comments",
			lambda: [
				getattr(comment_obj, "raw_data", {}) or {}
				for comment_obj in self.client.get_repo(repo_full_name).get_issue(
					int(issue_number)
				).get_comments()
			],
		)

	#============================================
	def get_commit_patch(self, commit_html_url: str) -> str:
		"""
		Download the text patch for one commit page URL.
		"""
		return self.cached_query(
			"commit_patch",
			{"url": commit_html_url},
			"GET commit.patch",
			lambda: self._get_commit_patch_live(commit_html_url),
			ttl_seconds=-1,
		)

	#============================================
	def _get_commit_patch_live(self, commit_html_url: str) -> str:
		url = commit_html_url.rstrip("/") + ".patch"
		try:
			response = requests.get(
				url,
				headers=self._http_headers("text/plain"),
				timeout=HTTP_TIMEOUT_SECONDS,
			)
			response.raise_for_status()
		except requests.RequestException as error:
			raise RuntimeError(f"Failed to download patch {url}: {error}") from error
		return response.text

	#============================================
	def search_discussions(self, query: str) -> list[dict]:
		"""
		Search discussions over GraphQL and return discussion nodes.
		"""
		if not self.token:
			raise RuntimeError("Discussion search requires settings.yaml github.token.")
		return self.cached_query(
			"search_discussions",
			{"query": query},
			"POST /graphql search discussions",
			lambda: self._search_discussions_live(query),
		)

	#============================================
	def _search_discussions_live(self, query: str) -> list[dict]:
		try:
			response = requests.post(
				GRAPHQL_URL,
				json={
					"query": DISCUSSION_SEARCH_QUERY,
					"variables": {"searchQuery": query},
				},
				headers=self._http_headers("application/json"),
				timeout=HTTP_TIMEOUT_SECONDS,
			)
			response.raise_for_status()
		except requests.RequestException as error:
			raise RuntimeError(f"Discussion search failed: {error}") from error
		payload = response.json()
		if payload.get("errors"):
			raise RuntimeError(f"Discussion search returned errors: {payload['errors']}")
		search = (payload.get("data") or {}).get("search") or {}
		nodes = []
		for edge in search.get("edges") or []:
			if not isinstance(edge, dict):
				continue
			node = edge.get("node")
			if isinstance(node, dict) and node:
				nodes.append(node)
		return nodes
