import json
import os
import sys


PIPELINE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from reportlib import github_cache


#============================================
def rewrite_fetched_at(path: str, fetched_at: str) -> None:
	with open(path, "r", encoding="utf-8") as handle:
		payload = json.load(handle)
	payload["fetched_at"] = fetched_at
	with open(path, "w", encoding="utf-8") as handle:
		json.dump(payload, handle)


#============================================
def test_set_then_get(tmp_path) -> None:
	"""
	Stored data comes back for the same category and query.
	"""
	cache = github_cache.GitHubQueryCache(str(tmp_path), default_ttl_seconds=60)
	cache.set("search_issues", {"query": "repo:acme/widget"}, [{"number": 7}])
	assert cache.get("search_issues", {"query": "repo:acme/widget"}) == [{"number": 7}]
	assert cache.get("search_issues", {"query": "repo:acme/other"}) is None
	assert cache.get("list_commits", {"query": "repo:acme/widget"}) is None


#============================================
def test_query_key_order_does_not_matter(tmp_path) -> None:
	cache = github_cache.GitHubQueryCache(str(tmp_path), default_ttl_seconds=60)
	first = cache.cache_path("list_commits", {"a": 1, "b": 2})
	second = cache.cache_path("list_commits", {"b": 2, "a": 1})
	assert first == second


#============================================
def test_expired_entry_is_ignored(tmp_path) -> None:
	"""
	Entries older than the ttl are treated as missing.
	"""
	cache = github_cache.GitHubQueryCache(str(tmp_path), default_ttl_seconds=60)
	path = cache.set("list_commits", {"repo": "acme/widget"}, ["old"])
	rewrite_fetched_at(path, "2020-01-01T00:00:00+00:00")
	assert cache.get("list_commits", {"repo": "acme/widget"}) is None


#============================================
def test_negative_ttl_never_expires(tmp_path) -> None:
	"""
	Commit patches are immutable and use a negative ttl.
	"""
	cache = github_cache.GitHubQueryCache(str(tmp_path), default_ttl_seconds=60)
	path = cache.set("commit_patch", {"url": "u"}, "diff text")
	rewrite_fetched_at(path, "2020-01-01T00:00:00+00:00")
	assert cache.get("commit_patch", {"url": "u"}, ttl_seconds=-1) == "diff text"


#============================================
def test_corrupt_entry_is_a_miss(tmp_path) -> None:
	cache = github_cache.GitHubQueryCache(str(tmp_path), default_ttl_seconds=60)
	path = cache.cache_path("list_commits", {"repo": "acme/widget"})
	with open(path, "w", encoding="utf-8") as handle:
		handle.write("{not json")
	assert cache.get("list_commits", {"repo": "acme/widget"}) is None


#============================================
def test_invalidate_removes_entry(tmp_path) -> None:
	cache = github_cache.GitHubQueryCache(str(tmp_path), default_ttl_seconds=60)
	cache.set("list_commits", {"repo": "acme/widget"}, ["x"])
	assert cache.invalidate("list_commits", {"repo": "acme/widget"}) is True
	assert cache.invalidate("list_commits", {"repo": "acme/widget"}) is False
	assert cache.get("list_commits", {"repo": "acme/widget"}) is None
