"""Per-record squeeze and single-stage analysis, fanned out over a thread pool."""

# Standard Library
import concurrent.futures

# local repo modules
from reportlib import prompt_loader
from reportlib import text_squeezer
from reportlib.activity_records import GitActivityRecord
from reportlib.activity_records import RepoProfile
from reportlib.activity_records import first_line
from reportlib.volume_tiers import ItemBudget


ISSUE_TEXT_LIMIT = 24000
README_SQUEEZE_THRESHOLD = 48000
README_MAX_WORDS = 9000
README_SPLIT = 0.7
README_MAX_TOKENS = 256
DISCUSSION_SPLIT = 0.4


#============================================
def _log(logger, message: str) -> None:
	if logger is not None:
		logger(message)


#============================================
def person_label(target_person: str | None) -> str:
	return target_person or "key participants"


#============================================
def possessive_label(target_person: str | None) -> str:
	if target_person:
		return f"{target_person}'s"
	return "key participants'"


#============================================
def compose_issue_text(record: GitActivityRecord, budget: ItemBudget) -> str:
	"""
	Flatten an issue and its comments into one analysis input.
	"""
	body = text_squeezer.squeeze_remove_quoted(record.body, budget.body_words, budget.body_split)
	labels = ", ".join(record.labels)
	creator = record.contributor
	text = (
		f"User '{creator}', opened an issue titled '{record.title}', "
		+ f"labeled '{labels}', with the following post: '{body}'."
	)
	for comment in record.comments:
		comment_body = text_squeezer.squeeze_remove_quoted(
			comment.body,
			budget.comment_words,
			budget.comment_split,
		)
		text += f"\n{comment.author} commented: {comment_body}"
	return text[:min(budget.text_limit, ISSUE_TEXT_LIMIT)]


#============================================
def compose_discussion_text(record: GitActivityRecord, budget: ItemBudget, encoding=None) -> str:
	"""
	Flatten a discussion thread and fit it to the token limit.
	"""
	body = text_squeezer.squeeze_remove_quoted(record.body, budget.body_words, budget.body_split)
	created = ""
	if record.occurred_at is not None:
		created = record.occurred_at.date().isoformat()
	upvotes = ""
	if record.upvotes > 0:
		upvotes = f" Upvotes: {record.upvotes}"
	lines = [
		f"Title: '{record.title}' Url: '{record.source_url}' Body: '{body}' "
		+ f"Created At: {created}{upvotes} Author: {record.contributor}"
	]
	for comment in record.comments:
		comment_body = text_squeezer.squeeze_remove_quoted(
			comment.body,
			budget.comment_words,
			budget.comment_split,
		)
		lines.append(f"{comment.author} comments: '{comment_body}'")
	text = "\n".join(lines) + "\n"
	return text_squeezer.squeeze_post_texts(
		text,
		budget.text_limit,
		DISCUSSION_SPLIT,
		encoding=encoding,
	)


#============================================
def analyze_commit(chain, source, record: GitActivityRecord, budget: ItemBudget) -> GitActivityRecord:
	"""
	Fetch a commit patch and summarise it.
	"""
	patch_text = source.fetch_commit_patch(record)[:budget.text_limit]
	values = {
		"user_name": record.contributor,
		"patch_text": patch_text,
		"commit_message": record.title,
	}
	summary = chain.run_single(
		prompt_loader.render_named_prompt("commit_analysis_system.txt", values),
		prompt_loader.render_named_prompt("commit_analysis_user.txt", values),
		budget.max_tokens,
		f"commit {first_line(record.title)[:60]}",
	)
	return record.with_summary(summary)


#============================================
def analyze_issue(
	chain,
	record: GitActivityRecord,
	budget: ItemBudget,
	target_person: str | None = None,
) -> GitActivityRecord:
	"""
	Summarise one issue thread.
	"""
	values = {
		"creator": record.contributor,
		"title": record.title,
		"issue_text": compose_issue_text(record, budget),
		"target": person_label(target_person),
	}
	summary = chain.run_single(
		prompt_loader.render_named_prompt("issue_analysis_system.txt", values),
		prompt_loader.render_named_prompt("issue_analysis_user.txt", values),
		budget.max_tokens,
		f"issue {record.source_url}",
	)
	return record.with_summary(summary)


#============================================
def analyze_discussion(
	chain,
	record: GitActivityRecord,
	budget: ItemBudget,
	target_person: str | None = None,
	encoding=None,
) -> GitActivityRecord:
	"""
	Summarise one discussion thread.
	"""
	values = {
		"discussion_text": compose_discussion_text(record, budget, encoding=encoding),
		"target": person_label(target_person),
	}
	summary = chain.run_single(
		prompt_loader.render_named_prompt("discussion_analysis_system.txt", values),
		prompt_loader.render_named_prompt("discussion_analysis_user.txt", values),
		budget.max_tokens,
		f"discussion {record.source_url}",
	)
	return record.with_summary(summary)


#============================================
def analyze_readme(chain, profile: RepoProfile) -> str:
	"""
	Summarise the repository description and README.

	Very long READMEs are squeezed to a word budget first.
	"""
	content = f"{profile.full_name}: {profile.description}\n{profile.readme_text}".strip()
	if len(content) > README_SQUEEZE_THRESHOLD:
		content = text_squeezer.squeeze_remove_quoted(content, README_MAX_WORDS, README_SPLIT)
	values = {"content": content}
	return chain.run_single(
		prompt_loader.render_named_prompt("readme_analysis_system.txt", values),
		prompt_loader.render_named_prompt("readme_analysis_user.txt", values),
		README_MAX_TOKENS,
		f"readme {profile.full_name}",
	)


#============================================
def analyze_records_concurrently(
	records: list[GitActivityRecord],
	analyze_fn,
	max_workers: int = 4,
	log_fn=None,
) -> list[GitActivityRecord]:
	"""
	Run analyze_fn over records on a bounded pool.

	Failed items are logged and dropped. Results come back in the original
	record order whatever order the workers finish in.

	Args:
		records: records to analyse.
		analyze_fn: callable taking one record and returning the analysed copy.
		max_workers: pool size; values below 1 are treated as 1.
		log_fn: optional logger.

	Returns:
		Analysed records in input order, without the failed ones.
	"""
	if not records:
		return []
	results: list[tuple[int, GitActivityRecord]] = []
	worker_count = max(1, min(int(max_workers), len(records)))
	with concurrent.futures.ThreadPoolExecutor(max_workers=worker_count) as executor:
		future_to_index = {
			executor.submit(analyze_fn, record): index
			for index, record in enumerate(records)
		}
		for future in concurrent.futures.as_completed(future_to_index):
			index = future_to_index[future]
			record = records[index]
			try:
				analysed = future.result()
			except (RuntimeError, OSError) as error:
				_log(log_fn, f"Analysis failed for {record.source_url}: {error}")
				continue
			results.append((index, analysed))
	results.sort(key=lambda item: item[0])
	return [analysed for _, analysed in results]
