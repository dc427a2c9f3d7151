"""Pull request generation for CommitPilot."""

from .gh import GitHubCLI, PRCreationError, PullRequest, RepositoryInfo, validate_pr_request
from .generator import (
	MAX_DIFF_LENGTH,
	ChangeAnalysis,
	PRContent,
	PRContentGenerator,
	analyze_changes,
	basic_pr_content,
	categorize_files,
	file_category,
	parse_pr_response,
	truncate_diff,
)

__all__ = [
	"MAX_DIFF_LENGTH",
	"ChangeAnalysis",
	"GitHubCLI",
	"PRContent",
	"PRContentGenerator",
	"PRCreationError",
	"PullRequest",
	"RepositoryInfo",
	"analyze_changes",
	"basic_pr_content",
	"categorize_files",
	"file_category",
	"parse_pr_response",
	"truncate_diff",
	"validate_pr_request",
]
