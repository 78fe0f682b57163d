# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import shlex
import sys
from datetime import date
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from hquant.app import (
    build_import_session,
    build_project_repository,
    build_repository,
    create_project,
    delete_record,
    load_board,
    load_catalog,
    monitor_board,
    move_project,
    persist_commit,
    tick_board,
)
from hquant.common import configure_logging
from hquant.domain.errors import (
    AdapterError,
    ImportAbortedError,
    InvalidInputError,
    InvalidTransitionError,
    MalformedResponseError,
    RecordNotFoundError,
)
from hquant.domain.model import KANBAN_COLUMNS, KanbanStatus, Priority, RecordKind
from hquant.domain.ports import ImageInput
from hquant.domain.review import EDITABLE_FIELDS, ReviewState

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from hquant.domain.catalog import Catalog
    from hquant.domain.model import CatalogRecord, Project
    from hquant.domain.review import ImportSession

log = logging.getLogger(__name__)

_CATALOG_COMMANDS = {"insumos": RecordKind.INSUMO, "composicoes": RecordKind.COMPOSICAO}
_STAGING_HELP = (
    "commands: [c]ommit | [l]ist | [e]dit ID field=value ... | "
    "[r]evise ID instruction | [d]iscard ID | [x] cancel"
)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="H-Quant catalog and project tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name in _CATALOG_COMMANDS:
        catalog = subparsers.add_parser(name, help=f"Manage the {name} catalog")
        catalog_sub = catalog.add_subparsers(dest="action", required=True)

        importer = catalog_sub.add_parser("import", help="Parse, review and commit a batch")
        importer.add_argument("file", type=str, help="Text file with the records ('-' for stdin)")
        importer.add_argument("--image", type=str, help="Optional picture sent with the text")
        importer.add_argument(
            "--on-match",
            choices=("ask", "merge", "new"),
            default="ask",
            help="Answer for every suspected duplicate (default: %(default)s)",
        )
        importer.add_argument(
            "--yes",
            action="store_true",
            help="Commit staged records without the interactive edit step",
        )

        catalog_sub.add_parser("list", help="List every record")
        search = catalog_sub.add_parser("search", help="Search by name, classification or brand")
        search.add_argument("query", type=str)
        history = catalog_sub.add_parser("history", help="Show the price history of a record")
        history.add_argument("record_id", type=str)
        remove = catalog_sub.add_parser("delete", help="Delete a record")
        remove.add_argument("record_id", type=str)

    projects = subparsers.add_parser("projects", help="Kanban board of quoting projects")
    projects_sub = projects.add_subparsers(dest="action", required=True)
    add = projects_sub.add_parser("add", help="Create a project in the backlog")
    add.add_argument("--nome", type=str, required=True)
    add.add_argument("--cliente", type=str, required=True)
    add.add_argument(
        "--prioridade",
        choices=[priority.value for priority in Priority],
        default=Priority.MEDIUM.value,
    )
    add.add_argument("--limite", type=str, help="Deadline as YYYY-MM-DD")
    add.add_argument("--resumo", type=str, default="", help="Technical summary")
    projects_sub.add_parser("list", help="Show the board")
    move = projects_sub.add_parser("move", help="Move a project to another column")
    move.add_argument("project_id", type=str)
    move.add_argument("status", type=str, help="Column name or its position (1-8)")
    projects_sub.add_parser("tick", help="Run the periodic status re-check once")
    monitor = projects_sub.add_parser("monitor", help="Re-check the board until interrupted")
    monitor.add_argument("--interval", type=float, help="Seconds between checks")

    return parser.parse_args(list(argv))


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value}") from exc


def _parse_status(value: str) -> KanbanStatus:
    cleaned = value.strip()
    if cleaned.isdigit() and 1 <= int(cleaned) <= len(KANBAN_COLUMNS):
        return KANBAN_COLUMNS[int(cleaned) - 1]
    for status in KanbanStatus:
        if cleaned.casefold() in {status.value.casefold(), status.name.casefold()}:
            return status
    raise ValueError(f"Unknown status: {value}")


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    file_path = Path(path)
    if not file_path.is_file():
        raise ValueError(f"File not found: {path}")
    return file_path.read_text(encoding="utf-8")


def _read_image(path: str | None) -> ImageInput | None:
    if path is None:
        return None
    file_path = Path(path)
    if not file_path.is_file():
        raise ValueError(f"Image not found: {path}")
    mime_type, _ = mimetypes.guess_type(file_path.name)
    if mime_type is None or not mime_type.startswith("image/"):
        raise ValueError(f"Not an image file: {path}")
    return ImageInput(data=file_path.read_bytes(), mime_type=mime_type)


def _format_record(record: CatalogRecord) -> str:
    return (
        f"{record.id}  {record.name} [{record.unit}]  {record.value:.2f}  "
        f"({record.classification})"
    )


def _format_project(project: Project) -> str:
    deadline = project.data_limite.isoformat() if project.data_limite else "-"
    return f"  {project.id}  {project.nome} / {project.cliente}  {project.prioridade}  {deadline}"


# interactive import -------------------------------------------------------------


def _review(session: ImportSession[CatalogRecord], on_match: str) -> ReviewState:
    state = session.state
    while state is ReviewState.AWAITING_USER_DECISION:
        pending = session.pending
        if pending is None:
            raise InvalidTransitionError("No pending review to answer")
        candidate = pending.candidate
        print(f"\nPossible duplicate (score {pending.score}): {pending.rationale}")
        print(f"  new:      {candidate.name} [{candidate.unit}] {candidate.value}")
        print(f"  existing: {_format_record(pending.existing)}")
        answer = on_match if on_match != "ask" else input("[m]erge / [n]ew / [c]ancel? ")
        choice = answer.strip().casefold()[:1]
        if choice == "m":
            state = session.confirm_merge()
        elif choice == "n":
            state = session.add_as_new()
        elif choice == "c":
            state = session.cancel()
        else:
            print("Please answer m, n or c.")
    return state


def _print_staged(session: ImportSession[CatalogRecord]) -> None:
    for item in session.staged:
        draft = item.draft
        target = f" -> {item.decision.target_id}" if item.decision.is_update else ""
        print(
            f"  {item.candidate_id}  {item.decision.kind}{target}  "
            f"{draft.name} [{draft.unit}] {draft.value}"
        )


async def _stage(session: ImportSession[CatalogRecord], *, assume_yes: bool) -> ReviewState:
    print("\nStaged records:")
    _print_staged(session)
    if assume_yes:
        return ReviewState.COMMITTING
    print(_STAGING_HELP)
    while True:
        try:
            words = shlex.split(input("> "))
            if not words:
                continue
            command, args = words[0].casefold()[:1], words[1:]
            if command == "c":
                return ReviewState.COMMITTING
            if command == "x":
                return session.cancel()
            if command == "l":
                _print_staged(session)
            elif command == "e" and len(args) >= 2:
                changes = dict(arg.split("=", 1) for arg in args[1:] if "=" in arg)
                session.staging.edit(args[0], **changes)
            elif command == "r" and len(args) >= 2:
                await session.revise(args[0], " ".join(args[1:]))
            elif command == "d" and len(args) == 1:
                session.staging.discard(args[0])
            else:
                print(_STAGING_HELP)
                print(f"editable fields: {', '.join(sorted(EDITABLE_FIELDS))}")
        except (
            RecordNotFoundError, InvalidTransitionError, MalformedResponseError, ValueError
        ) as exc:
            print(f"Error: {exc}")
        except AdapterError as exc:
            print(f"Revision failed: {exc}")


async def _run_import(kind: RecordKind, args: argparse.Namespace) -> None:
    text = _read_text(args.file)
    image = _read_image(args.image)
    repository = build_repository(kind)
    catalog = await load_catalog(kind, repository=repository)
    session = build_import_session(catalog)

    state = await session.load(text, image=image)
    state = _review(session, args.on_match)
    if state is ReviewState.COMMITTING:
        state = await _stage(session, assume_yes=args.yes)
    if state is ReviewState.COMMITTING:
        result = session.commit()
        report = await persist_commit(result, repository)
        for record_id, reason in report.failed:
            print(f"Not stored: {record_id} ({reason})")
        for rejection in result.rejected:
            print(f"Rejected: {rejection.candidate_id} {rejection.name or ''} ({rejection.reason})")
    for notice in session.notices:
        print(notice)


async def _run_catalog(kind: RecordKind, args: argparse.Namespace) -> None:
    if args.action == "import":
        await _run_import(kind, args)
        return

    repository = build_repository(kind)
    catalog: Catalog[CatalogRecord] = await load_catalog(kind, repository=repository)
    if args.action == "list":
        for record in sorted(catalog.records, key=lambda record: record.name.casefold()):
            print(_format_record(record))
    elif args.action == "search":
        for record in catalog.search(args.query):
            print(_format_record(record))
    elif args.action == "history":
        record = catalog.get(args.record_id)
        print(_format_record(record))
        for entry in catalog.history(record.id):
            print(f"  {entry.at.isoformat()}  {entry.value:.2f}")
    elif args.action == "delete":
        record = await delete_record(catalog, args.record_id, repository=repository)
        print(f"Deleted {record.name}")
    else:
        raise ValueError(f"Unsupported action: {args.action}")


async def _run_projects(args: argparse.Namespace) -> None:
    repository = build_project_repository()
    board = await load_board(repository=repository)
    if args.action == "add":
        project = await create_project(
            board,
            repository=repository,
            nome=args.nome,
            cliente=args.cliente,
            data_limite=_parse_date(args.limite) if args.limite else None,
            prioridade=Priority(args.prioridade),
            resumo_tecnico=args.resumo,
        )
        print(f"Created project {project.id}")
    elif args.action == "list":
        overdue = {project.id for project in board.overdue()}
        for status, projects in board.by_status().items():
            print(f"{status} ({len(projects)})")
            for project in projects:
                flag = "  OVERDUE" if project.id in overdue else ""
                print(_format_project(project) + flag)
    elif args.action == "move":
        project = await move_project(
            board, args.project_id, _parse_status(args.status), repository=repository
        )
        print(f"{project.nome} -> {project.status}")
    elif args.action == "tick":
        moved = await tick_board(board, repository=repository)
        print(f"{len(moved)} project(s) moved to {KanbanStatus.WAITING}")
    elif args.action == "monitor":
        stop = asyncio.Event()
        try:
            await monitor_board(board, repository=repository, stop=stop, interval=args.interval)
        finally:
            stop.set()
    else:
        raise ValueError(f"Unsupported action: {args.action}")


async def _dispatch(args: argparse.Namespace) -> None:
    if args.command in _CATALOG_COMMANDS:
        await _run_catalog(_CATALOG_COMMANDS[args.command], args)
    elif args.command == "projects":
        await _run_projects(args)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if getattr(parsed_args, "limite", None):
            _parse_date(parsed_args.limite)
        if getattr(parsed_args, "status", None):
            _parse_status(parsed_args.status)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        asyncio.run(_dispatch(parsed_args))
    except (InvalidInputError, InvalidTransitionError, RecordNotFoundError, ValueError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except ImportAbortedError as exc:
        log.error("%s (cause: %s)", exc, type(exc.cause).__name__)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
