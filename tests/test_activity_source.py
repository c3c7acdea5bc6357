import os
import sys
from datetime import datetime
from datetime import timezone

import github
import pytest


PIPELINE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from reportlib import activity_source
from reportlib.report_errors import InvalidRepositoryError


NOW = datetime(2026, 10, 16, 12, 0, 0, tzinfo=timezone.utc)


#============================================
class FakeGitHubClient:
	"""
	Records calls and returns canned payloads.
	"""

	def __init__(self, profile=None, commits=None, issues=None, comments=None, discussions=None):
		self.profile = profile
		self.commits = commits or []
		self.issues = issues or []
		self.comments = comments or {}
		self.discussions = discussions or []
		self.calls = []

	def get_repo_profile(self, full_name):
		self.calls.append(("profile", full_name))
		return self.profile

	def list_commits(self, full_name, since, until, author=""):
		self.calls.append(("commits", full_name, since, until, author))
		return self.commits

	def search_issues(self, query):
		self.calls.append(("issues", query))
		return self.issues

	def list_issue_comments(self, full_name, number):
		self.calls.append(("comments", full_name, number))
		return self.comments.get(number, [])

	def search_discussions(self, query):
		self.calls.append(("discussions", query))
		return self.discussions

	def get_commit_patch(self, url):
		self.calls.append(("patch", url))
		return "diff --git a/x b/x"


#============================================
def make_source(client) -> activity_source.GitHubActivitySource:
	return activity_source.GitHubActivitySource(client, now_fn=lambda: NOW)


#============================================
def test_issue_query_with_and_without_user() -> None:
	since = datetime(2026, 10, 9, 12, 0, 0, tzinfo=timezone.utc)
	assert activity_source.build_issue_query("acme", "widget", "alice", since) == (
		"repo:acme/widget is:issue involves:alice updated:>2026-10-09T12:00:00Z"
	)
	assert activity_source.build_discussion_query("acme", "widget", None, since) == (
		"repo:acme/widget updated:>2026-10-09T12:00:00Z"
	)


#============================================
def test_fetch_profile_missing_repo_raises() -> None:
	source = make_source(FakeGitHubClient(profile=None))
	with pytest.raises(InvalidRepositoryError):
		source.fetch_profile("acme", "missing")


#============================================
def test_fetch_profile_maps_payload() -> None:
	client = FakeGitHubClient(
		profile={"full_name": "acme/widget", "description": "Parser", "readme_text": "# Widget"},
	)
	profile = make_source(client).fetch_profile("acme", "widget")
	assert profile.full_name == "acme/widget"
	assert profile.description == "Parser"
	assert profile.readme_text == "# Widget"


#============================================
def test_fetch_commits_uses_window_and_skips_unattributed() -> None:
	"""
	The commit window ends now and starts days earlier.
	"""
	commits = [
		{"sha": "a", "html_url": "u1", "author": {"login": "alice"}, "commit": {"message": "m"}},
		{"sha": "b", "html_url": "u2", "author": None, "commit": {"message": "m"}},
	]
	client = FakeGitHubClient(commits=commits)
	records = make_source(client).fetch_commits("acme", "widget", "alice", 7)
	assert [record.source_url for record in records] == ["u1"]
	_, full_name, since, until, author = client.calls[0]
	assert full_name == "acme/widget"
	assert until == NOW
	assert (until - since).days == 7
	assert author == "alice"


#============================================
def test_fetch_issues_loads_comments_only_when_present() -> None:
	issues = [
		{"number": 7, "title": "a", "html_url": "i7", "user": {"login": "bob"}, "comments": 1},
		{"number": 8, "title": "b", "html_url": "i8", "user": {"login": "bob"}, "comments": 0},
	]
	client = FakeGitHubClient(
		issues=issues,
		comments={7: [{"user": {"login": "alice"}, "body": "On it."}]},
	)
	records = make_source(client).fetch_issues("acme", "widget", "alice", 7)
	assert [record.contributor for record in records] == ["alice", "alice"]
	assert records[0].comments[0].body == "On it."
	assert records[1].comments == ()
	comment_calls = [call for call in client.calls if call[0] == "comments"]
	assert comment_calls == [("comments", "acme/widget", 7)]


#============================================
def test_fetch_discussions_widens_window() -> None:
	"""
	Discussion search reaches back an extra month.
	"""
	client = FakeGitHubClient(discussions=[{"url": "d1", "author": {"login": "carol"}}])
	records = make_source(client).fetch_discussions("acme", "widget", None, 7)
	assert [record.contributor for record in records] == ["carol"]
	query = client.calls[0][1]
	assert query.endswith("updated:>2026-09-09T12:00:00Z")


#============================================
def test_fetch_commit_patch_uses_record_url() -> None:
	client = FakeGitHubClient()
	source = make_source(client)
	commits = [{"sha": "a", "html_url": "u1", "author": {"login": "alice"}, "commit": {"message": "m"}}]
	client.commits = commits
	record = source.fetch_weekly_commit_log("acme", "widget", 7)[0]
	assert source.fetch_commit_patch(record).startswith("diff")
	assert client.calls[-1] == ("patch", "u1")


#============================================
def test_fetch_profile_github_error_is_invalid_repository() -> None:
	"""
	A bad token or server error while fetching the profile is not a traceback.
	"""

	class BadTokenClient(FakeGitHubClient):
		def get_repo_profile(self, full_name):
			raise github.BadCredentialsException(401, {"message": "Bad credentials"}, None)

	messages = []
	source = activity_source.GitHubActivitySource(
		BadTokenClient(),
		log_fn=messages.append,
		now_fn=lambda: NOW,
	)
	with pytest.raises(InvalidRepositoryError):
		source.fetch_profile("acme", "widget")
	assert any("Profile fetch failed for acme/widget" in message for message in messages)
