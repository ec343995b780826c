"""Sub-command handlers for the jardeps CLI.

Each handler drives one ``DependencyManager`` workflow, prints a short report
to stdout and returns a ``CommandOutcome`` that ``jardeps.main`` maps to an
exit code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from common.cancellation import CancelToken
from dependency_manager import DependencyManager, format_file_size

logger = logging.getLogger(__name__)


@dataclass
class CommandOutcome:
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


Handler = Callable[[DependencyManager, Any, Optional[CancelToken]], Awaitable[CommandOutcome]]


def _failures(outcomes) -> List[str]:
    return [f"{o.coordinate}: {o.error}" for o in outcomes if not o.success]


async def cmd_add(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    result = await manager.add_dependency(args.SPEC, token=token)
    entry = result.entry
    cached = " (cached)" if result.outcome.cache_hit else ""
    print(f"Added {entry.group_id}:{entry.artifact_id}:{entry.version} -> {entry.path} "
          f"({format_file_size(result.outcome.size_bytes)}){cached}")
    return CommandOutcome(warnings=list(result.warnings))


async def cmd_remove(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    if await manager.remove_dependency(args.SPEC):
        print(f"Removed {args.SPEC}")
        return CommandOutcome()
    return CommandOutcome(warnings=[f"{args.SPEC} is not installed"])


async def cmd_list(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    entries = manager.list_dependencies()
    for entry in entries:
        group = f"{entry.group_id}:" if entry.group_id else ""
        print(f"{group}{entry.artifact_id}:{entry.version}\t{entry.path}")
    print(f"{len(entries)} dependencies")
    return CommandOutcome()


async def cmd_outdated(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    outcome = CommandOutcome()
    for info in await manager.check_updates(token=token):
        if info.error:
            print(f"{info.name}: {info.current} (check failed: {info.error})")
            outcome.warnings.append(f"{info.name}: {info.error}")
        elif info.update_available:
            print(f"{info.name}: {info.current} -> {info.latest}")
        else:
            print(f"{info.name}: {info.current} (up to date)")
    return outcome


async def cmd_update(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    outcomes = await manager.update_dependencies(token=token)
    for o in outcomes:
        if o.success:
            print(f"Updated {o.coordinate}")
    return CommandOutcome(errors=_failures(outcomes))


async def cmd_conflicts(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    report = manager.check_conflicts()
    for message in report.warnings:
        print(message)
    if not report.warnings:
        print("No conflicts found")
    return CommandOutcome(warnings=list(report.warnings))


async def cmd_validate(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    report = manager.validate()
    for message in report.errors:
        print(f"ERROR: {message}")
    for message in report.warnings:
        print(f"WARNING: {message}")
    print("Dependencies are valid" if report.valid else "Dependencies are invalid")
    return CommandOutcome(warnings=list(report.warnings), errors=list(report.errors))


async def cmd_stats(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    stats = manager.stats()
    print(f"Total dependencies: {stats.total}")
    print(f"Total size: {format_file_size(stats.size_bytes)}")
    print(f"Average size: {format_file_size(stats.average_size)}")
    print(f"Unique artifacts: {stats.unique_artifacts}")
    print(f"Version conflicts: {stats.version_conflicts}")
    return CommandOutcome()


async def cmd_search(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    for candidate in await manager.search(args.QUERY, limit=args.LIMIT, token=token):
        print(f"{candidate.group_id}:{candidate.artifact_id}:{candidate.latest_version}")
    return CommandOutcome()


async def cmd_export(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    count = manager.export_dependencies(args.PATH)
    print(f"Exported {count} dependencies to {args.PATH}")
    return CommandOutcome()


async def cmd_import(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    outcomes = await manager.import_dependencies(
        args.PATH, overwrite=not args.SKIP_EXISTING, token=token
    )
    imported = sum(1 for o in outcomes if o.success)
    print(f"Imported {imported} of {len(outcomes)} dependencies")
    return CommandOutcome(errors=_failures(outcomes))


async def cmd_lock(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    locked = manager.write_lock_file()
    print(f"Created lock file with {len(locked)} dependencies")
    return CommandOutcome()


async def cmd_fetch(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    result = await manager.fetch_with_transitives(args.SPEC, token=token)
    for o in result.outcomes:
        state = "ok" if o.success else f"failed: {o.error}"
        print(f"{o.coordinate}: {state}")
    print(f"Downloaded {result.fetched} of {len(result.outcomes)} dependencies")
    return CommandOutcome(errors=_failures(result.outcomes))


async def cmd_clean_cache(manager: DependencyManager, args: Any, token: Optional[CancelToken]) -> CommandOutcome:
    cleaned = manager.clean_cache()
    print(f"Cleaned {cleaned.entries_removed} cached dependencies "
          f"({format_file_size(cleaned.bytes_freed)})")
    return CommandOutcome()


HANDLERS: Dict[str, Handler] = {
    "add": cmd_add,
    "remove": cmd_remove,
    "list": cmd_list,
    "update": cmd_update,
    "outdated": cmd_outdated,
    "conflicts": cmd_conflicts,
    "validate": cmd_validate,
    "stats": cmd_stats,
    "search": cmd_search,
    "export": cmd_export,
    "import": cmd_import,
    "lock": cmd_lock,
    "fetch": cmd_fetch,
    "clean-cache": cmd_clean_cache,
}


async def run_command(manager: DependencyManager, args: Any) -> CommandOutcome:
    """Dispatch ``args.COMMAND`` inside the manager's HTTP session."""
    token = CancelToken(timeout=args.DEADLINE) if getattr(args, "DEADLINE", None) else None
    handler = HANDLERS[args.COMMAND]
    async with manager:
        return await handler(manager, args, token)
