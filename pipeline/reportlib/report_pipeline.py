"""
Weekly report coordinator.

Fetches each category through an activity source, runs per-item analysis
on a bounded pool, folds results by contributor, fits the category texts
into one budget and correlates them with a two-stage prompt chain.
"""

# Standard Library
import concurrent.futures
import dataclasses
import enum

# local repo modules
from reportlib import budget_allocator
from reportlib import contributor_aggregator
from reportlib import item_analysis
from reportlib import pipeline_settings
from reportlib import prompt_loader
from reportlib import summary_parser
from reportlib import volume_tiers
from reportlib.activity_records import first_line
from reportlib.prompt_chain import PromptChain
from reportlib.prompt_chain import select_generation_caps
from reportlib.report_errors import ChainFailureError
from reportlib.report_errors import InvalidRepositoryError
from reportlib.report_errors import NoActivityProcessedError

NO_DATA_MESSAGE = "No useful data found, nothing to report"
NO_DATA_PERSON_TEMPLATE = (
	"No useful data found for {person}, you may try alternative means to find out more about {person}"
)
NO_REPORT_MESSAGE = "no report generated"
CATEGORY_LABELS = {
	"profile": "profile data",
	"commits": "commit logs",
	"issues": "issue posts",
	"discussions": "discussion posts",
}


#============================================
def _log(logger, message: str) -> None:
	if logger is not None:
		logger(message)


#============================================
class ReportStage(enum.IntEnum):
	INIT = 0
	PROFILE_FETCHED = 1
	COMMITS_PROCESSED = 2
	ISSUES_PROCESSED = 3
	DISCUSSIONS_PROCESSED = 4
	CORRELATED = 5
	RENDERED = 6
	DONE = 7


#============================================
@dataclasses.dataclass
class ReportRun:
	"""
	Mutable state of one report run.
	"""
	owner: str
	repo: str
	target_person: str | None = None
	stage: ReportStage = ReportStage.INIT
	lines: list[str] = dataclasses.field(default_factory=list)
	log_fn: object = None

	#============================================
	def advance(self, stage: ReportStage) -> None:
		"""
		Move to a later stage; going backwards is a programming error.
		"""
		if stage < self.stage:
			raise ValueError(f"cannot move report from {self.stage.name} back to {stage.name}")
		self.stage = stage
		_log(self.log_fn, f"Report {self.owner}/{self.repo}: {stage.name.lower()}")


#============================================
@dataclasses.dataclass(frozen=True)
class ReportOptions:
	days: int = 7
	max_workers: int = 4
	total_budget: int = budget_allocator.DEFAULT_TOTAL_BUDGET
	chars_per_unit: int = budget_allocator.DEFAULT_CHARS_PER_UNIT
	weights: dict = dataclasses.field(
		default_factory=lambda: dict(budget_allocator.DEFAULT_WEIGHTS)
	)


#============================================
def report_options_from_settings(settings: dict) -> ReportOptions:
	"""
	Build report options from the report.* settings section.
	"""
	options = ReportOptions(
		days=pipeline_settings.get_setting_int(settings, ["report", "days"], 7),
		max_workers=pipeline_settings.get_setting_int(settings, ["report", "max_workers"], 4),
		total_budget=pipeline_settings.get_setting_int(
			settings,
			["report", "total_budget"],
			budget_allocator.DEFAULT_TOTAL_BUDGET,
		),
		chars_per_unit=pipeline_settings.get_setting_int(
			settings,
			["report", "chars_per_unit"],
			budget_allocator.DEFAULT_CHARS_PER_UNIT,
		),
		weights=pipeline_settings.get_report_weights(settings),
	)
	if options.days < 1:
		raise RuntimeError(f"report.days must be at least 1; got {options.days}")
	return options


#============================================
def no_data_message(target_person: str | None) -> str:
	if target_person:
		return NO_DATA_PERSON_TEMPLATE.format(person=target_person)
	return NO_DATA_MESSAGE


#============================================
def describe_profile(chain: PromptChain, profile, log_fn=None) -> str:
	"""
	Summarise a repository profile, falling back to its description.
	"""
	if profile.readme_text.strip() or profile.description.strip():
		try:
			return item_analysis.analyze_readme(chain, profile)
		except ChainFailureError as error:
			_log(log_fn, f"README analysis failed for {profile.full_name}: {error}")
	return profile.description.strip()


#============================================
def summarize_repository(source, client, owner_repo: str, log_fn=None) -> str:
	"""
	Produce the one-line "About owner/repo" overview.

	Raises:
		InvalidRepositoryError: for a malformed name, a missing repository or
			a repository with neither README nor description.
	"""
	parts = [part.strip() for part in (owner_repo or "").split("/")]
	if len(parts) != 2 or not all(parts):
		raise InvalidRepositoryError()
	owner, repo = parts
	profile = source.fetch_profile(owner, repo)
	summary = describe_profile(PromptChain(client, log_fn=log_fn), profile, log_fn)
	if not summary:
		raise InvalidRepositoryError()
	return f"About {owner}/{repo}: {summary}"


#============================================
@dataclasses.dataclass
class CategoryResult:
	"""
	Outcome of one category stage.
	"""
	count: int = 0
	bundles: dict = dataclasses.field(default_factory=dict)
	text: str = ""


#============================================
def _process_category(
	run: ReportRun,
	category: str,
	records: list,
	analyze_fn,
	max_workers: int,
) -> CategoryResult:
	analysed = item_analysis.analyze_records_concurrently(
		records,
		analyze_fn,
		max_workers=max_workers,
		log_fn=run.log_fn,
	)
	try:
		bundles = contributor_aggregator.aggregate_contributions(analysed)
	except NoActivityProcessedError:
		_log(run.log_fn, f"No {category} activity processed out of {len(records)} fetched")
		return CategoryResult()
	_log(run.log_fn, f"Analysed {len(analysed)} of {len(records)} {category}")
	return CategoryResult(
		count=len(analysed),
		bundles=bundles,
		text=contributor_aggregator.join_bundles(bundles),
	)


#============================================
def _weekly_commit_log(source, run: ReportRun, days: int) -> str:
	records = source.fetch_weekly_commit_log(run.owner, run.repo, days)
	return "\n".join(f"{record.contributor}: {first_line(record.title)}" for record in records)


#============================================
def process_commits(source, chain, run: ReportRun, options: ReportOptions) -> CategoryResult:
	"""
	Fetch and analyse commits; report their urls.
	"""
	records = source.fetch_commits(run.owner, run.repo, run.target_person, options.days)
	count = len(records)
	if count:
		urls = "\n".join(record.source_url for record in records)
		run.lines.append(f"found {count} commits:\n{urls}")
	tier = volume_tiers.select_volume_tier(count, volume_tiers.COMMIT_TURBO_THRESHOLD)
	if tier == volume_tiers.VolumeTier.SKIP:
		return CategoryResult()
	budget = volume_tiers.item_budget_for("commits", tier)
	_log(run.log_fn, f"Commits: {count} record(s), {tier.value} tier")
	result = _process_category(
		run,
		"commits",
		records,
		lambda record: item_analysis.analyze_commit(chain, source, record, budget),
		options.max_workers,
	)
	result.count = count
	if tier == volume_tiers.VolumeTier.SPARSE and result.text:
		try:
			weekly_log = _weekly_commit_log(source, run, options.days)
		except Exception as error:
			_log(run.log_fn, f"Weekly commit log failed: {error}")
			weekly_log = ""
		if weekly_log:
			result.text = (
				f"Here is the contributor's commits details: {result.text}, "
				+ f"here is the log of weekly commits for the entire repository: {weekly_log}"
			)
	return result


#============================================
def process_issues(source, chain, run: ReportRun, options: ReportOptions) -> CategoryResult:
	"""
	Fetch and analyse issues; report their urls.
	"""
	records = source.fetch_issues(run.owner, run.repo, run.target_person, options.days)
	count = len(records)
	if count:
		urls = "\n".join(record.source_url for record in records)
		run.lines.append(f"found {count} issues:\n{urls}")
	tier = volume_tiers.select_volume_tier(count, volume_tiers.ISSUE_TURBO_THRESHOLD)
	if tier == volume_tiers.VolumeTier.SKIP:
		return CategoryResult()
	budget = volume_tiers.item_budget_for("issues", tier)
	_log(run.log_fn, f"Issues: {count} record(s), {tier.value} tier")
	result = _process_category(
		run,
		"issues",
		records,
		lambda record: item_analysis.analyze_issue(chain, record, budget, run.target_person),
		options.max_workers,
	)
	result.count = count
	return result


#============================================
def process_discussions(
	source,
	chain,
	run: ReportRun,
	options: ReportOptions,
	encoding=None,
) -> CategoryResult:
	"""
	Fetch and analyse discussions; report the ones that were analysed.
	"""
	records = source.fetch_discussions(run.owner, run.repo, run.target_person, options.days)
	if not records:
		return CategoryResult()
	budget = volume_tiers.item_budget_for("discussions", volume_tiers.VolumeTier.DEFAULT)
	result = _process_category(
		run,
		"discussions",
		records,
		lambda record: item_analysis.analyze_discussion(
			chain,
			record,
			budget,
			run.target_person,
			encoding=encoding,
		),
		options.max_workers,
	)
	if result.count:
		urls = "\n".join(
			url for bundle in result.bundles.values() for url in bundle.urls()
		)
		run.lines.append(f"{result.count} discussions were referenced in analysis:\n {urls}")
	return result


#============================================
def _run_category_stage(run: ReportRun, category: str, stage_fn) -> CategoryResult:
	try:
		return stage_fn()
	except Exception as error:
		_log(run.log_fn, f"Processing {category} failed: {error}")
		return CategoryResult()


#============================================
def build_correlation_prompts(
	texts: dict[str, str],
	options: ReportOptions,
	target_person: str | None,
) -> tuple[str, str, str]:
	"""
	Fit category texts into the budget and render the three chain prompts.
	"""
	fitted = budget_allocator.fit_texts_to_budget(
		texts,
		total_units=options.total_budget,
		chars_per_unit=options.chars_per_unit,
		weight_table=options.weights,
	)
	values = {
		"target": item_analysis.possessive_label(target_person),
		"person": item_analysis.person_label(target_person),
	}
	for category, label in CATEGORY_LABELS.items():
		text = fitted.get(category, "")
		values[f"{category}_text"] = f"{label}: {text}" if text else ""
	system_prompt = prompt_loader.render_named_prompt("correlate_system.txt", values)
	user_prompt_1 = prompt_loader.render_named_prompt("correlate_user.txt", values)
	user_prompt_2 = prompt_loader.render_named_prompt("correlate_json.txt", values)
	return system_prompt, user_prompt_1, user_prompt_2


#============================================
def correlate(
	chain: PromptChain,
	texts: dict[str, str],
	entry_count: int,
	options: ReportOptions,
	target_person: str | None,
	log_fn=None,
) -> str:
	"""
	Run one correlation chain and flatten its JSON; "" on any failure.
	"""
	prompts = build_correlation_prompts(texts, options, target_person)
	caps = select_generation_caps(entry_count)
	purpose = f"correlate {target_person or 'repository'}"
	try:
		raw_summary = chain.run(prompts[0], prompts[1], prompts[2], caps, purpose)
	except ChainFailureError as error:
		_log(log_fn, f"Correlation skipped for {target_person or 'repository'}: {error}")
		return ""
	flat = summary_parser.flatten_summary(raw_summary)
	if not flat:
		_log(log_fn, f"Could not parse correlation summary for {target_person or 'repository'}")
	return flat


#============================================
def _bundle_text(result: CategoryResult, contributor: str) -> str:
	bundle = result.bundles.get(contributor)
	if bundle is None:
		return ""
	return contributor_aggregator.join_bundles({contributor: bundle})


#============================================
def _bundle_count(result: CategoryResult, contributor: str) -> int:
	bundle = result.bundles.get(contributor)
	if bundle is None:
		return 0
	return bundle.record_count


#============================================
def correlate_sections(
	chain: PromptChain,
	profile_text: str,
	commits: CategoryResult,
	issues: CategoryResult,
	discussions: CategoryResult,
	run: ReportRun,
	options: ReportOptions,
) -> list[str]:
	"""
	Correlate once for a target person, otherwise once per contributor.
	"""
	if run.target_person:
		texts = {
			"profile": profile_text,
			"commits": commits.text,
			"issues": issues.text,
			"discussions": discussions.text,
		}
		section = correlate(
			chain,
			texts,
			commits.count + issues.count,
			options,
			run.target_person,
			run.log_fn,
		)
		return [section] if section else []

	contributors = list(commits.bundles)
	for contributor in issues.bundles:
		if contributor not in contributors:
			contributors.append(contributor)

	def correlate_one(contributor: str) -> str:
		texts = {
			"profile": profile_text,
			"commits": _bundle_text(commits, contributor),
			"issues": _bundle_text(issues, contributor),
			"discussions": _bundle_text(discussions, contributor),
		}
		entry_count = _bundle_count(commits, contributor) + _bundle_count(issues, contributor)
		section = correlate(chain, texts, entry_count, options, contributor, run.log_fn)
		if not section:
			return ""
		return f"{contributor}: {section}"

	if not contributors:
		return []
	worker_count = max(1, min(options.max_workers, len(contributors)))
	with concurrent.futures.ThreadPoolExecutor(max_workers=worker_count) as executor:
		sections = list(executor.map(correlate_one, contributors))
	return [section for section in sections if section]


#============================================
def note_new_contributors(seen_store, run: ReportRun, results: list[CategoryResult]) -> None:
	"""
	Log contributors not seen before for this repository and remember them.
	"""
	for result in results:
		for contributor in result.bundles:
			if not contributor:
				continue
			if seen_store.contains(run.owner, run.repo, contributor):
				continue
			_log(run.log_fn, f"First-time contributor in {run.owner}/{run.repo}: {contributor}")
			seen_store.add(run.owner, run.repo, contributor)


#============================================
def generate_weekly_report(
	source,
	client,
	owner: str,
	repo: str,
	target_person: str | None = None,
	options: ReportOptions | None = None,
	seen_store=None,
	encoding=None,
	log_fn=None,
) -> str:
	"""
	Build the weekly contribution report for one repository.

	Args:
		source: activity source with fetch_profile, fetch_commits,
			fetch_weekly_commit_log, fetch_commit_patch, fetch_issues and
			fetch_discussions.
		client: generation client with generate_chat.
		owner: repository owner.
		repo: repository name.
		target_person: optional login to focus the report on.
		options: report options; defaults follow ReportOptions.
		seen_store: optional store with contains/add for first-time contributors.
		encoding: optional tokenizer for discussion squeezing.
		log_fn: optional logger.

	Returns:
		Newline-joined report text.

	Raises:
		InvalidRepositoryError: when the repository cannot be validated.
	"""
	options = options or ReportOptions()
	target_person = (target_person or "").strip() or None
	run = ReportRun(owner=owner, repo=repo, target_person=target_person, log_fn=log_fn)
	chain = PromptChain(client, log_fn=log_fn)

	try:
		profile = source.fetch_profile(owner, repo)
	except InvalidRepositoryError:
		raise
	except RuntimeError as error:
		_log(log_fn, f"Profile fetch failed for {owner}/{repo}: {error}")
		raise InvalidRepositoryError() from error
	profile_summary = describe_profile(chain, profile, log_fn)
	profile_text = f"About {owner}/{repo}: {profile_summary}" if profile_summary else ""
	run.advance(ReportStage.PROFILE_FETCHED)

	commits = _run_category_stage(
		run,
		"commits",
		lambda: process_commits(source, chain, run, options),
	)
	run.advance(ReportStage.COMMITS_PROCESSED)
	issues = _run_category_stage(
		run,
		"issues",
		lambda: process_issues(source, chain, run, options),
	)
	run.advance(ReportStage.ISSUES_PROCESSED)
	discussions = _run_category_stage(
		run,
		"discussions",
		lambda: process_discussions(source, chain, run, options, encoding=encoding),
	)
	run.advance(ReportStage.DISCUSSIONS_PROCESSED)

	if not (commits.text or issues.text or discussions.text):
		run.advance(ReportStage.DONE)
		return no_data_message(target_person)

	if seen_store is not None:
		note_new_contributors(seen_store, run, [commits, issues, discussions])

	sections = correlate_sections(
		chain,
		profile_text,
		commits,
		issues,
		discussions,
		run,
		options,
	)
	run.advance(ReportStage.CORRELATED)

	report_lines = []
	if profile_text:
		report_lines.append(profile_text)
	report_lines.extend(run.lines)
	if sections:
		report_lines.extend(sections)
	else:
		report_lines.append(NO_REPORT_MESSAGE)
	run.advance(ReportStage.RENDERED)
	report = "\n".join(report_lines)
	run.advance(ReportStage.DONE)
	return report
