"""Command printing version and usage information."""

import typer

DESCRIPTION = (
	"commitpilot - AI-written commit messages and pull requests for your git workflow.\n\n"
	"commitpilot drafts commit messages from your staged changes, lets you accept, edit or revise them, "
	"can split a large change into several focused commits and opens pull requests through the GitHub CLI."
)

USAGE = """\
Usage:
  commitpilot commit [options]        Generate a message for the staged changes
  commitpilot agent [options]         Let an agent inspect the repository first
  commitpilot agent --split           Split uncommitted changes into several commits
  commitpilot pr [--base B] [--head H] [--draft]
  commitpilot ignore list|add|remove|test
  commitpilot config set|get <key> [value] [--profile P]
  commitpilot prepare-commit-msg <file>  Fill in the message from a git hook
  commitpilot version"""


def version_text() -> str:
	"""Full text printed by the version command."""
	from commitpilot import __version__

	return f"{DESCRIPTION}\n\nVersion: {__version__}\n\n{USAGE}"


def register_command(app: typer.Typer) -> None:
	"""Register the version command with the CLI app."""

	@app.command(name="version")
	def version_command() -> None:
		"""Print the current version and a short usage overview."""
		typer.echo(version_text())
