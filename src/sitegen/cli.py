#!/usr/bin/env python3
"""
Command line entry point for the sitegen client.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from sitegen import __version__
from sitegen.api import SitegenAPI
from sitegen.artifacts import ArtifactStore
from sitegen.collaborators import FileTemplateSource
from sitegen.config import Settings
from sitegen.errors import SitegenError
from sitegen.logging import configure_logging, get_logger
from sitegen.markup import ensure_full_document, extract_css, format_page_name, order_page_names
from sitegen.models import (
    ApprovalRequest,
    ClarificationRequest,
    GeneratedArtifact,
    GenerationComplete,
    GenerationOutcome,
    PageContent,
)
from sitegen.progress.models import ProgressUpdate
from sitegen.updates import UpdateSession
from sitegen.workspace import SiteWorkspace

logger = get_logger(__name__)

GLOBAL_CSS_FILENAME = "global.css"


def _settings(base_url: str | None) -> Settings:
    if base_url:
        return Settings(api_base_url=base_url)
    return Settings()


def _echo_progress(update: ProgressUpdate) -> None:
    if update.label:
        prefix = "✓" if update.status == "completed" else "…"
        click.echo(f"[{round(update.progress):3d}%] {prefix} {update.label}")


def _format_plan(plan: Any) -> str:
    if plan is None:
        return "(no plan provided)"
    if isinstance(plan, str):
        return plan
    return json.dumps(plan, indent=2, ensure_ascii=False)


def _ask_clarification(request: ClarificationRequest) -> str:
    if request.message:
        click.echo(request.message)
    if not request.questions:
        return click.prompt("Your answer")
    answers = []
    for question in request.questions:
        answer = click.prompt(question)
        answers.append(f"{question}\n{answer}")
    return "\n\n".join(answers)


async def _run_generation(
    workspace: SiteWorkspace, description: str
) -> GenerationComplete:
    outcome: GenerationOutcome = await workspace.generate(description)
    while not isinstance(outcome, GenerationComplete):
        if isinstance(outcome, ClarificationRequest):
            click.echo("\nA few questions before generating:")
            outcome = await workspace.answer(_ask_clarification(outcome))
        elif isinstance(outcome, ApprovalRequest):
            click.echo("\nProposed plan:")
            click.echo(_format_plan(outcome.plan))
            if outcome.design_system is not None:
                click.echo("\nDesign system:")
                click.echo(_format_plan(outcome.design_system))
            if click.confirm("\nApprove this plan?", default=True):
                outcome = await workspace.approve()
            else:
                outcome = await workspace.request_revision(click.prompt("What should change?"))
    return outcome


@click.group()
@click.version_option(version=__version__, prog_name="sitegen")
@click.option("--debug", is_flag=True, default=False, help="Human-readable debug logging")
@click.option("--base-url", default=None, help="Generation server URL (default from SITEGEN_API_BASE_URL)")
@click.pass_context
def cli(ctx: click.Context, debug: bool, base_url: str | None) -> None:
    """sitegen CLI - generate websites and review AI edits."""
    settings = _settings(base_url)
    configure_logging(debug=debug or settings.debug, log_level=settings.log_level)
    ctx.obj = {"settings": settings}


@cli.command()
@click.argument("description")
@click.option(
    "--template",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="HTML file to use as a styling reference",
)
@click.option(
    "--out",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to write the generated pages to",
)
@click.option(
    "--zip",
    "zip_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the generated website as a zip archive",
)
@click.pass_context
def generate(
    ctx: click.Context,
    description: str,
    template: Path | None,
    out: Path | None,
    zip_path: Path | None,
) -> None:
    """Generate a multi-page website from a business DESCRIPTION."""
    settings: Settings = ctx.obj["settings"]

    async def run() -> None:
        workspace = SiteWorkspace(
            api=SitegenAPI(settings),
            template_source=FileTemplateSource(template),
        )
        async with workspace:
            workspace.pipeline.subscribe(_echo_progress)
            outcome = await _run_generation(workspace, description)

            names = order_page_names(outcome.artifact.pages)
            click.echo(f"\nGenerated {len(names)} page(s): {', '.join(map(format_page_name, names))}")
            if outcome.artifact.folder_path:
                click.echo(f"Saved by the server to {outcome.artifact.folder_path}")
            if out is not None:
                workspace.export_directory(out)
                click.echo(f"Pages written to {out}")
            if zip_path is not None:
                workspace.export_archive(zip_path)
                click.echo(f"Archive written to {zip_path}")

    try:
        asyncio.run(run())
    except SitegenError as e:
        raise click.ClickException(e.message) from e


def _load_pages(directory: Path) -> tuple[dict[str, PageContent], dict[str, str]]:
    pages: dict[str, PageContent] = {}
    files: dict[str, str] = {}
    for path in sorted(directory.glob("*.html")):
        html = path.read_text(encoding="utf-8")
        pages[path.stem] = PageContent(html=html, css=extract_css(html))
        files[path.stem] = path.name
    return pages, files


@cli.command()
@click.argument(
    "pages_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.argument("instruction")
@click.option("--folder-path", default=None, help="Server folder to save the change to immediately")
@click.option("--yes", is_flag=True, default=False, help="Apply the proposed change without asking")
@click.pass_context
def update(
    ctx: click.Context,
    pages_dir: Path,
    instruction: str,
    folder_path: str | None,
    yes: bool,
) -> None:
    """Edit the HTML pages in PAGES_DIR with a natural-language INSTRUCTION."""
    settings: Settings = ctx.obj["settings"]
    pages, files = _load_pages(pages_dir)
    if not pages:
        raise click.ClickException(f"No .html pages found in {pages_dir}")

    store = ArtifactStore()
    first = pages[order_page_names(pages)[0]]
    store.apply_patch(
        artifact=GeneratedArtifact(
            pages=pages,
            global_css=first.css,
            folder_path=folder_path,
            saved_files=files,
        )
    )

    async def run() -> None:
        async with SitegenAPI(settings) as api:
            session = UpdateSession(api, store)
            proposal = await session.propose(
                store.get_pages(), store.get_global_css(), instruction, store.folder_path
            )

            click.echo(proposal.changes_summary or "Changes proposed.")
            for name in order_page_names(proposal.updated_pages):
                click.echo(f"  updated page: {format_page_name(name)}")
            if proposal.updated_global_css:
                click.echo("  updated global styles")

            if not (yes or click.confirm("Apply these changes?", default=True)):
                session.discard()
                click.echo("Changes rejected; local files left unchanged.")
                if proposal.persisted_to:
                    click.echo(f"Note: the server already saved this change to {proposal.persisted_to}")
                return

            session.commit()
            current = store.get_pages()
            for name in order_page_names(proposal.updated_pages):
                page = current[name]
                target = pages_dir / (files.get(name) or f"{name}.html")
                target.write_text(
                    ensure_full_document(page.html, page.css, title=format_page_name(name)),
                    encoding="utf-8",
                )
            if proposal.updated_global_css:
                # Pages keep their own <style> blocks; the new sheet is written beside them
                target = pages_dir / GLOBAL_CSS_FILENAME
                target.write_text(store.get_global_css(), encoding="utf-8")
                click.echo(f"Updated global styles written to {target.name}; link it from your pages to use them.")
            click.echo("Changes applied.")

    try:
        asyncio.run(run())
    except SitegenError as e:
        raise click.ClickException(e.message) from e


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
