#!/usr/bin/env python3
import argparse
import dataclasses
import os
from datetime import datetime

import rich.console

from reportlib import activity_source
from reportlib import github_client
from reportlib import llm_client
from reportlib import pipeline_settings
from reportlib import report_pipeline
from reportlib import seen_contributors
from reportlib.report_errors import InvalidRepositoryError


RICH_CONSOLE = rich.console.Console(stderr=True)


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[weekly_report {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif ("rate limit" in lower) or ("skipping" in lower) or ("skipped" in lower):
		style = "yellow"
	elif ("wrote " in lower) or ("first-time" in lower) or ("analysed" in lower):
		style = "green"
	RICH_CONSOLE.print(line, style=style, markup=False, highlight=False)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Generate a weekly GitHub contribution report for one repository."
	)
	parser.add_argument("--owner", default="", help="Repository owner.")
	parser.add_argument("--repo", default="", help="Repository name.")
	parser.add_argument(
		"--user",
		default="",
		help="Optional GitHub login to focus the report on.",
	)
	parser.add_argument(
		"--about-repo",
		default="",
		help="Print a one-line overview of owner/repo instead of the weekly report.",
	)
	parser.add_argument(
		"--days",
		type=int,
		default=0,
		help="Trailing window in days (0 uses settings.yaml report.days).",
	)
	parser.add_argument(
		"--settings",
		default="settings.yaml",
		help="YAML settings path for defaults.",
	)
	parser.add_argument(
		"--llm-transport",
		choices=["ollama", "openai", "auto"],
		default="",
		help="LLM transport (defaults to the enabled provider in settings.yaml).",
	)
	parser.add_argument(
		"--llm-model",
		default="",
		help="Override the provider model name.",
	)
	parser.add_argument(
		"--max-workers",
		type=int,
		default=0,
		help="Concurrent analysis calls (0 uses settings.yaml report.max_workers).",
	)
	parser.add_argument(
		"--output",
		default="",
		help="Write the report to this path instead of stdout.",
	)
	args = parser.parse_args(argv)
	if not args.about_repo and not (args.owner and args.repo):
		parser.error("--owner and --repo are required unless --about-repo is given.")
	return args


#============================================
def apply_overrides(options: report_pipeline.ReportOptions, args: argparse.Namespace):
	"""
	Apply CLI overrides on top of settings-derived options.
	"""
	changes = {}
	if args.days > 0:
		changes["days"] = args.days
	if args.max_workers > 0:
		changes["max_workers"] = args.max_workers
	if not changes:
		return options
	return dataclasses.replace(options, **changes)


#============================================
def build_source(settings: dict) -> activity_source.GitHubActivitySource:
	"""
	Create the GitHub-backed activity source from settings.
	"""
	token = pipeline_settings.get_setting_str(settings, ["github", "token"], "")
	token = token or os.environ.get("GITHUB_TOKEN", "")
	if token:
		log_step("Using authenticated GitHub API mode.")
	else:
		log_step("Using unauthenticated GitHub API mode (lower rate limit, no discussions).")
	client = github_client.GitHubClient(
		token,
		log_fn=log_step,
		cache_dir=pipeline_settings.get_setting_str(
			settings,
			["github", "cache_dir"],
			os.path.join("out", "cache", "github_api"),
		),
		cache_ttl_seconds=pipeline_settings.get_setting_int(
			settings,
			["github", "cache_ttl_seconds"],
			60 * 60,
		),
	)
	return activity_source.GitHubActivitySource(client, log_fn=log_step)


#============================================
def write_report(report: str, output_path: str) -> None:
	if not output_path:
		print(report)
		return
	parent = os.path.dirname(output_path)
	if parent:
		os.makedirs(parent, exist_ok=True)
	with open(output_path, "w", encoding="utf-8") as handle:
		handle.write(report)
		handle.write("\n")
	log_step(f"Wrote report: {output_path}")


#============================================
def log_api_usage(source) -> None:
	"""
	Log GitHub API call and cache counters for the run.
	"""
	usage = source.client.api_usage_snapshot()
	log_step(
		"GitHub API usage: "
		+ f"calls={usage.get('api_call_count', 0)}, "
		+ f"cache_hits={usage.get('cache_hit_count', 0)}, "
		+ f"cache_misses={usage.get('cache_miss_count', 0)}"
	)


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Run the weekly report and print or write it.
	"""
	args = parse_args(argv)
	settings, settings_path = pipeline_settings.load_settings(args.settings)
	log_step(f"Using settings file: {settings_path}")
	options = apply_overrides(report_pipeline.report_options_from_settings(settings), args)
	transport_name = args.llm_transport or pipeline_settings.get_enabled_llm_transport(settings)
	log_step(
		"LLM execution path: "
		+ llm_client.describe_llm_execution_path(transport_name, args.llm_model)
	)
	client = llm_client.create_llm_client(settings, transport_name, args.llm_model, log_fn=log_step)
	source = build_source(settings)

	try:
		if args.about_repo:
			report = report_pipeline.summarize_repository(
				source,
				client,
				args.about_repo,
				log_fn=log_step,
			)
		else:
			seen_store = None
			seen_path = pipeline_settings.get_setting_str(settings, ["report", "seen_store"], "")
			if seen_path:
				seen_store = seen_contributors.SeenContributorStore(seen_path)
			report = report_pipeline.generate_weekly_report(
				source,
				client,
				args.owner,
				args.repo,
				target_person=args.user,
				options=options,
				seen_store=seen_store,
				log_fn=log_step,
			)
	except InvalidRepositoryError as error:
		log_api_usage(source)
		RICH_CONSOLE.print(str(error), style="bold red", markup=False, highlight=False)
		return 1
	log_api_usage(source)
	write_report(report, args.output)
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
