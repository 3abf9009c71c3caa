"""
Command-line interface for the content quality gate.

Usage:
    python -m content_gate check article.json                    # Run the gate
    python -m content_gate check article.json -r task.json -j    # JSON verdict
    python -m content_gate stats article.json                    # Structural stats
    python -m content_gate score-sentence "..." --service plumber
    python -m content_gate repair article.json --seed 7          # Narrative repair draft
    python -m content_gate verticals                             # Vocabulary registry
    python -m content_gate config                                # Current defaults
"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .document import Document, parse_document
from .logging_conf import bind_context, get_logger, setup_logging
from .narrative import NarrativeOutcomeDetector
from .quality_gate import QualityGate
from .repair import NarrativeRepairSynthesizer
from .requirements import Requirements
from .stats import extract_stats
from .verticals import DEFAULT_REGISTRY
from .violations import Severity

console = Console()
logger = get_logger(__name__)

SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
}


def load_document(path: str) -> Document:
    document = parse_document(Path(path).read_text(encoding="utf-8"))
    bind_context(document=document.slug or Path(path).stem)
    return document


def load_requirements(path: Optional[str]) -> Requirements:
    """Settings defaults, overridden by a JSON requirements file."""
    overrides = {}
    if path:
        overrides = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(overrides, dict):
            raise click.BadParameter("requirements file must hold a JSON object")
    return Requirements.from_settings(**overrides)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool):
    """Content quality gate CLI."""
    settings = get_settings()
    level = "DEBUG" if debug else settings.log_level
    setup_logging(level=level, json_output=settings.log_json)


@cli.command()
@click.argument("document_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--requirements", "-r", "requirements_path", type=click.Path(exists=True, dir_okay=False),
              help="JSON file with per-task requirements")
@click.option("--json-output", "-j", is_flag=True, help="Output the verdict as JSON")
@click.option("--repair", is_flag=True, help="Attach a narrative repair proposal")
def check(document_path: str, requirements_path: Optional[str], json_output: bool, repair: bool):
    """
    Run the quality gate on a generated article.

    Examples:
      python -m content_gate check article.json
      python -m content_gate check article.json -r task.json --json-output
    """
    try:
        document = load_document(document_path)
        requirements = load_requirements(requirements_path)
        synthesizer = NarrativeRepairSynthesizer(seed=get_settings().repair_seed)
        verdict = QualityGate(synthesizer=synthesizer).evaluate(document, requirements, propose_repair=repair)
    except Exception as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        raise click.Abort()

    if json_output:
        click.echo(verdict.to_json())
        return

    style = "bold green" if verdict.passed else "bold red"
    console.print(Panel(f"[{style}]{verdict.summary()}[/{style}]", title=document.title or document_path))

    categories = Table(title="Categories")
    categories.add_column("Category", style="cyan")
    categories.add_column("Passed")
    for name, ok in verdict.category_passes.items():
        categories.add_row(name, "[green]Yes[/green]" if ok else "[red]No[/red]")
    console.print(categories)

    if verdict.all_violations:
        table = Table(title="Violations")
        table.add_column("Severity")
        table.add_column("Code", style="cyan")
        table.add_column("Message")
        table.add_column("Suggestion", style="dim")
        for violation in verdict.all_violations:
            sev_style = SEVERITY_STYLES[violation.severity]
            table.add_row(
                f"[{sev_style}]{violation.severity.value}[/{sev_style}]",
                violation.code.value,
                escape(violation.message),
                escape(violation.suggestion or ""),
            )
        console.print(table)

    if verdict.authority:
        console.print(
            f"\nAuthority: {verdict.authority.score}/100 "
            f"(missing: {', '.join(verdict.authority.missing) or 'none'})"
        )
    if verdict.narrative:
        console.print(f"Narrative: {verdict.narrative.summary()}")
    if verdict.regeneration_codes:
        console.print(f"Regeneration triggers: {', '.join(c.value for c in verdict.regeneration_codes)}")
    if verdict.repair:
        console.print(Panel(escape(verdict.repair.narrative), title=f"Repair draft ({verdict.repair.strategy})"))


@cli.command()
@click.argument("document_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--keyphrase", "-k", help="Keyphrase to count (defaults to the focus keyphrase)")
def stats(document_path: str, keyphrase: Optional[str]):
    """Show structural statistics for an article."""
    try:
        document = load_document(document_path)
        result = extract_stats(document, keyphrase=keyphrase, words_per_minute=get_settings().words_per_minute)
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()

    table = Table(title="Document Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for key, value in result.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


@cli.command("score-sentence")
@click.argument("sentence")
@click.option("--service", "-s", help="Service or niche used to pick a vocabulary")
def score_sentence(sentence: str, service: Optional[str]):
    """
    Score one sentence as a narrative outcome.

    Examples:
      python -m content_gate score-sentence "Because the garden backs onto the canal, buyers booked viewings within 48 hours." -s "estate agent"
    """
    detector = NarrativeOutcomeDetector()
    vocabulary = DEFAULT_REGISTRY.resolve(service)
    span = detector.score(sentence, service)

    table = Table(title=f"Outcome score ({vocabulary.id})")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("score", f"{span.score}/10")
    table.add_row("signals", ", ".join(span.matched_signals) or "-")
    table.add_row("vague", f"[red]{span.vague_match}[/red] ({span.vague_pattern})" if span.is_vague else "no")
    console.print(table)


@cli.command()
@click.argument("document_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--requirements", "-r", "requirements_path", type=click.Path(exists=True, dir_okay=False),
              help="JSON file with per-task requirements")
@click.option("--seed", type=int, help="Seed for template selection")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the repaired document here")
def repair(document_path: str, requirements_path: Optional[str], seed: Optional[int], output: Optional[str]):
    """Propose a narrative-outcome repair for an article."""
    try:
        document = load_document(document_path)
        requirements = load_requirements(requirements_path)
        seed = seed if seed is not None else get_settings().repair_seed
        proposal = NarrativeRepairSynthesizer(seed=seed).propose(document, requirements)
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()

    if proposal is None:
        console.print("[yellow]No repair needed (no vision signals, or a valid outcome already exists)[/yellow]")
        return

    console.print(Panel(
        escape(proposal.narrative),
        title=f"Inserted after block {proposal.insert_after} ({proposal.strategy})",
        subtitle="requires review" if proposal.requires_review else None,
    ))

    if output:
        Path(output).write_text(proposal.repaired_document.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[green]Repaired document written to {output}[/green]")


@cli.command()
def verticals():
    """List the narrative vocabularies."""
    table = Table(title="Vertical Vocabularies")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Actors", justify="right")
    table.add_column("Impact verbs", justify="right")
    table.add_column("Proof words", justify="right")
    table.add_column("Vague patterns", justify="right")

    for vocabulary in DEFAULT_REGISTRY:
        info = vocabulary.describe()
        table.add_row(
            info["id"],
            info["name"],
            str(info["actors"]),
            str(info["impact_verbs"]),
            str(info["proof_words"]),
            str(info["vague_patterns"]),
        )

    console.print(table)
    console.print(f"\nFallback: {DEFAULT_REGISTRY.fallback.id}")


@cli.command()
def config():
    """Show current default limits."""
    settings = get_settings()

    console.print(Panel("[bold blue]Current Configuration[/bold blue]"))

    sections = {
        "Structure": [
            "max_blocks", "max_html_bytes", "max_h2_count", "max_table_rows",
            "max_paragraph_words", "max_excerpt_chars", "max_internal_links",
            "min_keyphrase_occurrences", "min_word_count", "min_reading_minutes",
            "words_per_minute",
        ],
        "SEO": [
            "seo_title_min_chars", "seo_title_max_chars", "meta_description_min_chars",
            "meta_description_max_chars", "max_keyphrase_words", "gate_strictness",
            "seo_draft_min_overlap",
        ],
        "Authority": ["min_authority_score", "vision_fact_threshold", "user_fact_threshold"],
        "AEO": ["faq_min_questions", "faq_max_questions", "faq_answer_min_words", "faq_answer_max_words"],
        "Runtime": ["repair_seed", "log_level", "log_json"],
    }

    for title, names in sections.items():
        console.print(f"\n[cyan]{title}:[/cyan]")
        width = max(len(name) for name in names) + 1
        for name in names:
            console.print(f"  {(name + ':').ljust(width)} {getattr(settings, name)}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
