"""
``adpa`` command line interface.

    adpa generate project-charter --context ./my-project
    adpa generate-category risk-management --retries 5
    adpa generate-all --format docx --max-concurrent 3
    adpa validate --output generated-documents
    adpa confluence publish
    adpa vcs commit -m "Regenerate charter"

Exit codes: 0 on success, 1 on validation/configuration failure or when any
document fails to generate.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from sqlalchemy import func, select

from app.config import APP_VERSION, settings
from app.errors import ADPAError, ConfigurationError
from app.services.ai_provider import AIProviderClient, get_provider_metrics
from app.services.document_generator import (
    OUTPUT_FORMATS,
    DocumentGenerator,
    GenerationOptions,
    GenerationResult,
)
from app.services.file_manager import read_project_context
from app.services.generation_tasks import (
    GENERATION_TASKS,
    get_available_categories,
    get_task,
    get_tasks_by_category,
)
from app.services.integrations.confluence import ConfluencePublisher
from app.services.integrations.sharepoint import SharePointPublisher
from app.services.integrations.vcs import GitRepository
from app.services.retry import RetryPolicy
from app.services.standards_compliance import (
    STANDARDS,
    analyze_document,
    validate_output_dir,
)

logger = logging.getLogger("adpa")

ENV_FILE = Path(".env")
ENV_HINT = "Copy .env.example to .env and fill in your AI provider settings."

STAKEHOLDER_DOCUMENTS = {
    "analysis": "stakeholder-analysis",
    "register": "stakeholder-register",
    "engagement-plan": "stakeholder-engagement-plan",
}
RISK_COMPLIANCE_KEY = "risk-compliance-assessment"


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _echo(args: argparse.Namespace, message: str = "") -> None:
    if not getattr(args, "quiet", False):
        print(message)


def _fail(message: str, hint: Optional[str] = None) -> int:
    print(f"✗ {message}", file=sys.stderr)
    if hint:
        print(f"  {hint}", file=sys.stderr)
    return 1


def _configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# ---------------------------------------------------------------------------
# Generation commands
# ---------------------------------------------------------------------------

def _print_result(args: argparse.Namespace, result: GenerationResult) -> None:
    _echo(args)
    _echo(args, f"{'✓' if result.success else '⚠'} {result.message} in {result.duration_seconds:.1f}s")
    for path in result.generated_files:
        _echo(args, f"  📄 {path}")
    for err in result.errors:
        print(f"  ✗ {err['task']}: {err['error']}", file=sys.stderr)
    for provider, m in get_provider_metrics().items():
        _echo(
            args,
            f"  🤖 {provider}: {m['total_calls']} call(s), {m['failed_calls']} failed, "
            f"avg {m['average_response_time']:.2f}s, {m['rate_limit_hits']} rate limit hit(s)",
        )


async def _generate(
    args: argparse.Namespace,
    document_keys: Sequence[str] = (),
    categories: Sequence[str] = (),
) -> Optional[GenerationResult]:
    """Run the generator with the shared CLI flags. Returns None on setup failure."""
    client = AIProviderClient()
    client.validate_configuration()

    context = read_project_context(Path(args.context), max_chars=settings.CONTEXT_MAX_CHARS)
    options = GenerationOptions(
        document_keys=list(document_keys),
        include_categories=list(categories),
        max_concurrent=args.max_concurrent,
        output_dir=Path(args.output),
        format=args.format,
        cleanup=args.cleanup,
        retry=RetryPolicy.from_milliseconds(args.retries, args.retry_backoff, args.retry_max_delay),
    )
    generator = DocumentGenerator(context, options, client)
    tasks = generator.filter_tasks()
    _echo(args, f"🚀 Generating {len(tasks)} document(s) with {client.provider} ({client.model})")
    for task in tasks:
        _echo(args, f"  {task.emoji} {task.name}")

    result = await generator.generate_all()
    _print_result(args, result)
    return result


def _run_generation(
    args: argparse.Namespace,
    document_keys: Sequence[str] = (),
    categories: Sequence[str] = (),
) -> int:
    try:
        result = asyncio.run(_generate(args, document_keys, categories))
    except ConfigurationError as exc:
        return _fail(str(exc))
    except FileNotFoundError as exc:
        return _fail(str(exc), "Point --context at a directory containing README.md or PROJECT.md.")
    return 0 if result is not None and result.success else 1


def cmd_generate(args: argparse.Namespace) -> int:
    try:
        get_task(args.key)
    except KeyError:
        return _fail(f"Unknown document key '{args.key}'", "Run 'adpa list-templates' to see keys.")
    return _run_generation(args, document_keys=[args.key])


def cmd_generate_category(args: argparse.Namespace) -> int:
    if args.category not in get_available_categories():
        return _fail(
            f"Unknown category '{args.category}'",
            f"Available: {', '.join(get_available_categories())}",
        )
    return _run_generation(args, categories=[args.category])


def cmd_generate_all(args: argparse.Namespace) -> int:
    return _run_generation(args)


def cmd_stakeholder(args: argparse.Namespace) -> int:
    if args.action == "all":
        return _run_generation(args, categories=["stakeholder-management"])
    return _run_generation(args, document_keys=[STAKEHOLDER_DOCUMENTS[args.action]])


def cmd_risk_compliance(args: argparse.Namespace) -> int:
    try:
        result = asyncio.run(_generate(args, document_keys=[RISK_COMPLIANCE_KEY]))
    except ConfigurationError as exc:
        return _fail(str(exc))
    except FileNotFoundError as exc:
        return _fail(str(exc))

    if result is None or not result.documents:
        return 1
    report = analyze_document(result.documents[0].content, document_key=RISK_COMPLIANCE_KEY)
    _echo(args, f"⚖️  {report.standard} compliance score: {report.score:.1f} "
                f"({'compliant' if report.compliant else 'below threshold'})")
    for rec in report.recommendations[:5]:
        _echo(args, f"  • {rec}")
    return 0 if result.success else 1


# ---------------------------------------------------------------------------
# Informational commands
# ---------------------------------------------------------------------------

def cmd_list_templates(args: argparse.Namespace) -> int:
    print(f"📚 {len(GENERATION_TASKS)} document types in {len(get_available_categories())} categories\n")
    for category in get_available_categories():
        print(f"{category}:")
        for task in get_tasks_by_category(category):
            print(f"  {task.emoji} {task.key:<32} {task.name}")
        print()
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    ok = True
    print(f"ADPA {APP_VERSION}")
    print()

    if ENV_FILE.exists():
        print(f"✓ Environment file: {ENV_FILE.resolve()}")
    else:
        print("⚠ No .env file found")
        print(f"  {ENV_HINT}")

    try:
        client = AIProviderClient()
    except ConfigurationError as exc:
        print(f"✗ {exc}")
        return 1

    missing = client.missing_configuration()
    if missing:
        ok = False
        print(f"✗ AI provider: {client.provider} (missing {', '.join(missing)})")
    else:
        print(f"✓ AI provider: {client.provider} (model {client.model})")

    output = Path(settings.OUTPUT_DIR)
    print(f"{'✓' if output.is_dir() else '⚠'} Output directory: {output.resolve()}")
    print(f"  Generation: max_concurrent={settings.GENERATION_MAX_CONCURRENT} "
          f"retries={settings.GENERATION_RETRIES} "
          f"backoff={settings.GENERATION_RETRY_BACKOFF_MS}ms "
          f"max_delay={settings.GENERATION_RETRY_MAX_DELAY_MS}ms")

    for name, publisher in (
        ("Confluence", ConfluencePublisher()),
        ("SharePoint", SharePointPublisher()),
    ):
        publisher_missing = publisher.missing_configuration()
        print(f"{'✓' if not publisher_missing else '–'} {name}: "
              f"{'configured' if not publisher_missing else 'not configured'}")

    return 0 if ok else 1


def cmd_validate(args: argparse.Namespace) -> int:
    try:
        report = validate_output_dir(Path(args.output), standard=args.standard)
    except (FileNotFoundError, ValueError) as exc:
        return _fail(str(exc), "Generate documents first with 'adpa generate-all'.")

    if not report.documents:
        return _fail(f"No generated documents found in {args.output}")

    for doc in report.documents:
        mark = "✓" if doc.compliant else "✗"
        _echo(args, f"  {mark} {doc.document_key:<32} {doc.score:5.1f}")
        if args.verbose:
            for rec in doc.recommendations:
                _echo(args, f"      • {rec}")
    _echo(args)
    _echo(args, f"{report.standard} overall score: {report.overall_score:.1f} "
                f"({'compliant' if report.compliant else 'non-compliant'})")
    return 0 if report.compliant else 1


# ---------------------------------------------------------------------------
# Publishing and VCS
# ---------------------------------------------------------------------------

def _publisher_command(
    args: argparse.Namespace,
    publisher_factory: Callable[[], object],
    name: str,
) -> int:
    publisher = publisher_factory()
    if args.action == "status":
        missing = publisher.missing_configuration()
        if missing:
            return _fail(f"{name} is not configured: missing {', '.join(missing)}", ENV_HINT)
        print(f"✓ {name} is configured")
        return 0

    try:
        if args.action == "test":
            asyncio.run(publisher.test_connection())
            print(f"✓ {name} connection OK")
        else:
            published = asyncio.run(publisher.publish_directory(Path(args.output)))
            for item in published:
                _echo(args, f"  ✓ {item.get('title') or item.get('path')}")
            _echo(args, f"✓ Published {len(published)} document(s) to {name}")
    except (ADPAError, FileNotFoundError) as exc:
        return _fail(str(exc))
    return 0


def cmd_confluence(args: argparse.Namespace) -> int:
    return _publisher_command(args, ConfluencePublisher, "Confluence")


def cmd_sharepoint(args: argparse.Namespace) -> int:
    return _publisher_command(args, SharePointPublisher, "SharePoint")


def cmd_vcs(args: argparse.Namespace) -> int:
    repo = GitRepository(Path(args.output))
    try:
        if args.action == "init":
            print(repo.init())
        elif args.action == "status":
            changes = repo.status()
            print("\n".join(changes) if changes else "Working tree clean")
        elif args.action == "commit":
            out = repo.commit(args.message)
            print(out if out is not None else "Nothing to commit")
        elif args.action == "push":
            print(repo.push(args.remote, args.branch) or f"Pushed to {args.remote}")
    except ADPAError as exc:
        return _fail(str(exc))
    return 0


# ---------------------------------------------------------------------------
# Feedback (database)
# ---------------------------------------------------------------------------

async def _feedback(args: argparse.Namespace) -> int:
    from app.database import AsyncSessionLocal, close_db, init_db
    from app.models.database_models import Document, Feedback, FeedbackType

    await init_db()
    try:
        async with AsyncSessionLocal() as session:
            if args.action == "submit":
                if await session.get(Document, args.document_id) is None:
                    return _fail(f"Document {args.document_id} not found")
                row = Feedback(
                    document_id=args.document_id,
                    rating=args.rating,
                    comment=args.comment,
                    feedback_type=FeedbackType(args.type),
                    submitted_by=args.by,
                )
                session.add(row)
                await session.commit()
                print(f"✓ Feedback {row.id} recorded")

            elif args.action == "list":
                query = select(Feedback).order_by(Feedback.created_at.desc()).limit(args.limit)
                if args.document_id is not None:
                    query = query.where(Feedback.document_id == args.document_id)
                for fb in (await session.execute(query)).scalars():
                    print(f"  [{fb.id}] doc={fb.document_id} {'★' * fb.rating:<5} "
                          f"{fb.feedback_type.value:<12} {fb.comment or ''}")

            else:
                total, average = (
                    await session.execute(select(func.count(Feedback.id), func.avg(Feedback.rating)))
                ).one()
                print(f"Total feedback: {total}")
                print(f"Average rating: {float(average):.2f}" if average is not None else "Average rating: n/a")
    finally:
        await close_db()
    return 0


def cmd_feedback(args: argparse.Namespace) -> int:
    if args.action == "submit" and (args.document_id is None or args.rating is None):
        return _fail("feedback submit requires --document-id and --rating")
    return asyncio.run(_feedback(args))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--quiet", "-q", action="store_true", help="Only print errors")
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    common.add_argument(
        "--output", "-o", default=settings.OUTPUT_DIR,
        help=f"Output directory (default: {settings.OUTPUT_DIR})",
    )

    generation = argparse.ArgumentParser(add_help=False, parents=[common])
    generation.add_argument("--format", choices=OUTPUT_FORMATS, default="markdown")
    generation.add_argument(
        "--retries", type=_non_negative_int, default=settings.GENERATION_RETRIES,
        help="Retries per document after the first attempt",
    )
    generation.add_argument(
        "--retry-backoff", type=_non_negative_int, default=settings.GENERATION_RETRY_BACKOFF_MS,
        help="Initial retry delay in ms (doubles each retry)",
    )
    generation.add_argument(
        "--retry-max-delay", type=_non_negative_int, default=settings.GENERATION_RETRY_MAX_DELAY_MS,
        help="Upper bound for the retry delay in ms",
    )
    generation.add_argument(
        "--max-concurrent", type=_positive_int, default=settings.GENERATION_MAX_CONCURRENT,
    )
    generation.add_argument(
        "--context", default=".", help="Project directory with README.md / PROJECT.md / docs/",
    )
    generation.add_argument(
        "--cleanup", action="store_true", help="Remove previously generated documents first",
    )

    parser = argparse.ArgumentParser(
        prog="adpa", description="Automated Documentation Project Assistant"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", parents=[generation], help="Generate one document")
    p.add_argument("key", help="Document key, see list-templates")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("generate-category", parents=[generation], help="Generate a category")
    p.add_argument("category")
    p.set_defaults(func=cmd_generate_category)

    p = sub.add_parser("generate-all", parents=[generation], help="Generate every document")
    p.set_defaults(func=cmd_generate_all)

    p = sub.add_parser("list-templates", parents=[common], help="List document types")
    p.set_defaults(func=cmd_list_templates)

    p = sub.add_parser("status", parents=[common], help="Show configuration status")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("validate", parents=[common], help="Check generated documents")
    p.add_argument("--standard", choices=sorted(STANDARDS), default="PMBOK_7")
    p.set_defaults(func=cmd_validate)

    for name, func in (("confluence", cmd_confluence), ("sharepoint", cmd_sharepoint)):
        p = sub.add_parser(name, parents=[common], help=f"Publish to {name.title()}")
        p.add_argument("action", choices=["test", "publish", "status"])
        p.set_defaults(func=func)

    p = sub.add_parser("vcs", parents=[common], help="Git operations on the output directory")
    p.add_argument("action", choices=["init", "status", "commit", "push"])
    p.add_argument("--message", "-m", default="Update generated project documents")
    p.add_argument("--remote", default="origin")
    p.add_argument("--branch", default=None)
    p.set_defaults(func=cmd_vcs)

    p = sub.add_parser("feedback", parents=[common], help="Document feedback")
    p.add_argument("action", choices=["submit", "list", "stats"])
    p.add_argument("--document-id", type=int)
    p.add_argument("--rating", type=int, choices=range(1, 6))
    p.add_argument("--comment")
    p.add_argument(
        "--type", default="general",
        choices=["quality", "accuracy", "completeness", "formatting", "general"],
    )
    p.add_argument("--by", help="Who is submitting")
    p.add_argument("--limit", type=_positive_int, default=20)
    p.set_defaults(func=cmd_feedback)

    p = sub.add_parser("stakeholder", parents=[generation], help="Stakeholder documents")
    p.add_argument("action", choices=[*STAKEHOLDER_DOCUMENTS, "all"])
    p.set_defaults(func=cmd_stakeholder)

    p = sub.add_parser(
        "risk-compliance", parents=[generation], help="Risk and compliance assessment"
    )
    p.set_defaults(func=cmd_risk_compliance)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
