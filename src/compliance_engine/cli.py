"""CLI commands for the compliance engine."""

import asyncio
import json
import logging
import re
import sys

import click

from compliance_engine.config import settings


class SecretRedactingFilter(logging.Filter):
    """Filter to redact sensitive information from logs."""

    SECRET_PATTERNS = [
        (re.compile(r"(api[_-]?key[\s:=]+)[\w-]{20,}", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(token[\s:=]+)[\w-]{20,}", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(password[\s:=]+)\S+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(secret[\s:=]+)\S+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(bearer\s+)[\w.-]+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(sk-ant-)[\w-]+"), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact secrets from log messages."""
        if isinstance(record.msg, str):
            for pattern, replacement in self.SECRET_PATTERNS:
                record.msg = pattern.sub(replacement, record.msg)
        return True


# Configure logging with secret redaction
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(SecretRedactingFilter())
logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """Compliance Engine CLI."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
def init_db() -> None:
    """Initialize the database schema."""
    asyncio.run(_init_db())


async def _init_db() -> None:
    from compliance_engine.db.database import init_db as create_tables

    await create_tables()
    click.echo("Database initialized successfully!")


@cli.command()
@click.argument("document_id")
@click.option("--org", "-o", "organization_id", required=True, help="Organization ID")
@click.option("--user", "-u", "user_id", default=None, help="User recorded on new answer versions")
@click.option("--json", "as_json", is_flag=True, help="Print raw NDJSON events")
def autofill(document_id: str, organization_id: str, user_id: str | None, as_json: bool) -> None:
    """Auto-fill an SOA document and print progress."""
    asyncio.run(_autofill(document_id, organization_id, user_id, as_json))


async def _autofill(
    document_id: str, organization_id: str, user_id: str | None, as_json: bool
) -> None:
    """Async implementation of autofill command."""
    from compliance_engine.answers.orchestrator import create_orchestrator
    from compliance_engine.db.database import init_db as create_tables
    from compliance_engine.rag.exceptions import LLMProviderNotConfiguredError

    await create_tables()

    try:
        orchestrator = await create_orchestrator()
    except LLMProviderNotConfiguredError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    failed = False
    async for event in orchestrator.run(document_id, organization_id, user_id):
        if as_json:
            click.echo(event.to_wire())
            continue

        if event.type == "progress":
            click.echo(f"Answering {event.total} questions...")
        elif event.type == "answer":
            if event.is_applicable is None:
                verdict = "insufficient data" if event.insufficient_data else "failed"
            else:
                verdict = "applicable" if event.is_applicable else "not applicable"
            click.echo(f"  [{event.question_index + 1}] {event.question_id}: {verdict}")
        elif event.type == "complete":
            click.echo(f"\nAuto-fill complete!")
            click.echo(f"  Answered: {event.answered}/{event.total}")
        elif event.type == "error":
            click.echo(f"Error: {event.message}", err=True)
            failed = True

    if failed:
        sys.exit(1)


@cli.command()
@click.argument("text", required=False)
def parse_answer(text: str | None) -> None:
    """Parse a raw model answer (argument or stdin) and print the verdict."""
    from compliance_engine.answers.parser import interpret, resolve

    raw_text = text if text is not None else sys.stdin.read()
    variant = interpret(raw_text)
    parsed = resolve(variant)

    click.echo(f"Interpreted as: {type(variant).__name__}")
    click.echo(
        json.dumps(
            {
                "isApplicable": parsed.is_applicable,
                "justification": parsed.justification,
                "succeeded": parsed.succeeded,
                "insufficientData": parsed.insufficient_data,
            },
            indent=2,
        )
    )


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", "-p", default=8000, type=int, help="Port")
def serve(host: str, port: int) -> None:
    """Run the HTTP API."""
    import uvicorn

    logger.info(f"Starting {settings.APP_NAME} on {host}:{port}")
    uvicorn.run("compliance_engine.main:app", host=host, port=port)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
