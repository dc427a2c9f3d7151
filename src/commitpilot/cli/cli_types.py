"""Type definitions for CLI parameters shared by several commands."""

from typing import Annotated

import typer

ApiKeyOpt = Annotated[
	str | None, typer.Option("--api-key", help="API key for the provider (prefer environment variables).")
]

BaseUrlOpt = Annotated[str | None, typer.Option("--base-url", help="Base URL of the provider API.")]

ModelOpt = Annotated[str | None, typer.Option("--model", "-m", help="Model to use. Overrides the profile.")]

ProfileOpt = Annotated[
	str | None,
	typer.Option("--profile", "-p", help="Configuration profile to use (default: COMMITPILOT_PROFILE or 'default')."),
]

ExcludeOpt = Annotated[
	list[str] | None,
	typer.Option("--exclude", "-x", help="Glob pattern to leave out of the analysis. Can be repeated."),
]

StageAllFlag = Annotated[bool, typer.Option("--stage-all", "-a", help="Stage all changes before generating.")]

LocaleOpt = Annotated[str | None, typer.Option("--locale", help="Two-letter language code for messages.")]

MaxLengthOpt = Annotated[int | None, typer.Option("--max-length", help="Maximum commit subject length.", min=1)]

ContextLinesOpt = Annotated[
	int | None, typer.Option("--context-lines", help="Context lines around each change in diffs.", min=1)
]

GenerateOpt = Annotated[int | None, typer.Option("--generate", "-g", help="Number of candidate messages.", min=1)]

TypeOpt = Annotated[
	str | None, typer.Option("--type", "-t", help="Commit format: 'conventional', or '' for plain messages.")
]
