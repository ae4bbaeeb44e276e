# src/focusmate/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..breakdown.parser import ParsedBreakdown, parse_breakdown
from ..core.errors import AlreadyActiveError, TemplateNotFoundError
from ..core.state import AppState, Plan
from ..favorites.favorite_store import FavoriteBreakdown
from ..llm.breakdown import BreakdownResult
from ..templates.catalog import Category, Template
from ..templates.template_store import CustomTemplate
from ..timer.timer_engine import format_elapsed
from ..timer.timer_models import TaskTimer

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        if len(inspect.signature(handler).parameters) >= 3:
            return cast(CommandHandler3, handler)(state, args, emit)
        return cast(CommandHandler2, handler)(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  (any text without a leading / is broken down into steps)")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def render_steps(parsed: ParsedBreakdown) -> str:
    """Numbered "N. Action (X min)" text, the same shape the model is asked for."""
    return "\n".join(f"{i}. {desc} ({mins} min)" for i, (desc, mins) in enumerate(parsed, start=1))


def format_plan(plan: Plan) -> str:
    source = {
        "model": "",
        "cache": " (cached)",
        "favorite": " (from favorites)",
        "template": " (from template)",
    }[plan.source]

    if not plan.parsed:
        return (
            f"Breakdown for {plan.label!r}{source}: no steps could be read from the response.\n"
            f"{plan.response}"
        )
    return (
        f"Breakdown for {plan.label!r}{source}, ~{plan.parsed.total_minutes} min:\n"
        f"{render_steps(plan.parsed)}\n"
        "Use /start to begin, /fav save to keep it."
    )


def format_task(task: TaskTimer, progress: float) -> str:
    if task.is_completed:
        status = "completed"
    elif task.running:
        status = "in progress"
    else:
        status = "stopped"

    lines = [
        f"{task.task_label} [{status}] {task.completed_steps}/{len(task.steps)} steps "
        f"({progress:.0%}), {format_elapsed(task.total_elapsed_ms)} of ~{task.total_estimated_minutes} min"
    ]
    for i, step in enumerate(task.steps, start=1):
        mark = "x" if step.completed else (">" if step.running else " ")
        lines.append(
            f"  [{mark}] {i}. {step.description} "
            f"({format_elapsed(step.elapsed_ms)} / {step.estimated_minutes} min)"
        )
    return "\n".join(lines)


def _format_template_line(t: Template | CustomTemplate) -> str:
    fav = " *" if isinstance(t, CustomTemplate) and t.is_favorite else ""
    return f"  {t.id}{fav} - {t.title} [{t.category}, {t.difficulty}, ~{t.estimated_total_minutes} min]"


def _step_index(args: list[str]) -> int | None:
    """1-based step number from args -> 0-based engine index."""
    if not args:
        return None
    try:
        n = int(args[0])
    except ValueError:
        return None
    return n - 1 if n >= 1 else None


# ---- breakdown ----


def breakdown_request(line: str) -> str | None:
    """Task text a console line asks to break down (plain text or /breakdown ...), else None."""
    line = line.strip()
    if not line:
        return None
    if not line.startswith("/"):
        return line
    parts = line[1:].split(maxsplit=1)
    if parts and parts[0].lower() in ("breakdown", "b"):
        return parts[1].strip() if len(parts) > 1 else ""
    return None


def accept_breakdown(state: AppState, result: BreakdownResult) -> str:
    """Make a breakdown result the current plan and describe it."""
    state.plan = Plan(
        label=result.task,
        response=result.response,
        parsed=result.parsed,
        source="cache" if result.from_cache else "model",
    )
    text = format_plan(state.plan)
    if not result.from_cache:
        text += f"\n(generated in {result.inference_ms / 1000.0:.1f}s)"
    return text


def cmd_breakdown(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task = " ".join(args).strip()
    if not task:
        return "Usage: /breakdown <task>, or just type the task."
    if emit:
        emit("Thinking about the steps...")
    return accept_breakdown(state, state.breakdown_service.breakdown(task))


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    models = ", ".join(state.settings.llm_models)
    task = state.engine.current()
    task_line = "none"
    if task is not None:
        task_line = f"{task.task_label!r} {task.completed_steps}/{len(task.steps)} steps"
        if task.is_completed:
            task_line += " (completed)"

    cache_stats = state.breakdown_service.cache_stats()
    cache_line = "off" if cache_stats is None else f"{cache_stats.count} entries, ~{cache_stats.approx_bytes} bytes"
    db = str(state.backend.db_path) if state.backend is not None and state.backend.available() else "memory only"

    return (
        "Status:\n"
        f"  LLM: {type(state.llm).__name__}\n"
        f"  Models (priority -> fallback): {models}\n"
        f"  Task: {task_line}\n"
        f"  Plan: {state.plan.label if state.plan else 'none'}\n"
        f"  Cache: {cache_line}\n"
        f"  Favorites: {len(state.favorites)}\n"
        f"  Custom templates: {len(state.templates.custom_templates())}\n"
        f"  Storage: {db}"
    )


def cmd_cache(state: AppState, args: list[str]) -> str:
    """
    /cache        -> show response cache stats
    /cache clear  -> drop every cached response
    """
    if not state.breakdown_service.cache_enabled:
        return "Response cache is disabled (FOCUSMATE_CACHE_ENABLED=false)."

    if args and args[0].lower() == "clear":
        state.breakdown_service.clear_cache()
        return "Response cache cleared."

    stats = state.breakdown_service.cache_stats()
    assert stats is not None
    return f"Response cache: {stats.count} entries, ~{stats.approx_bytes / 1024:.1f} KB."


# ---- timer ----


def cmd_start(state: AppState, args: list[str]) -> str:
    plan = state.plan
    if plan is None:
        return "Nothing to start. Type a task first, or pick one with /fav use or /tpl use."
    if not plan.parsed:
        return "The current plan has no steps. Try breaking the task down again."

    try:
        task = state.engine.start_task(plan.label, plan.parsed.steps, plan.parsed.minutes)
    except AlreadyActiveError:
        return "A task is already in progress. Use /finish or /stop first."

    return "Started.\n" + format_task(task, state.engine.progress()) + "\nUse /toggle N to time a step, /done N when it is done."


def cmd_timer(state: AppState, args: list[str]) -> str:
    task = state.engine.current()
    if task is None:
        return "No task. Use /start after a breakdown."
    return format_task(task, state.engine.progress())


def _step_command(state: AppState, args: list[str], usage: str, op: Callable[[int], TaskTimer | None]) -> str:
    index = _step_index(args)
    if index is None:
        return usage
    task = op(index)
    if task is None:
        return "No such step (or no task in progress)."
    return format_task(task, state.engine.progress())


def cmd_toggle(state: AppState, args: list[str]) -> str:
    return _step_command(state, args, "Usage: /toggle <step number>", state.engine.toggle_step)


def cmd_done(state: AppState, args: list[str]) -> str:
    was_running = state.engine.has_active_task
    text = _step_command(state, args, "Usage: /done <step number>", state.engine.complete_step)
    task = state.engine.current()
    if was_running and task is not None and task.is_completed:
        text += f"\nAll steps done. Great work! Time spent: {format_elapsed(task.total_elapsed_ms)}"
    return text


def cmd_undo(state: AppState, args: list[str]) -> str:
    return _step_command(state, args, "Usage: /undo <step number>", state.engine.uncomplete_step)


def cmd_finish(state: AppState, args: list[str]) -> str:
    task = state.engine.complete_task()
    if task is None:
        return "No task to finish."
    return f"Finished {task.task_label!r}. Time spent: {format_elapsed(task.total_elapsed_ms)}"


def cmd_stop(state: AppState, args: list[str]) -> str:
    task = state.engine.stop_task()
    if task is None:
        return "No task to stop."
    return (
        f"Stopped {task.task_label!r} after {format_elapsed(task.total_elapsed_ms)} "
        f"({task.completed_steps}/{len(task.steps)} steps done)."
    )


# ---- favorites ----

_FAV_USAGE = (
    "Favorites:\n"
    "  /fav save        - save the current plan\n"
    "  /fav list        - list favorites (most recently used first)\n"
    "  /fav search <q>  - search by task text\n"
    "  /fav use <n>     - load favorite n as the current plan\n"
    "  /fav rm <n>      - remove favorite n\n"
    "  /fav clear       - remove all favorites"
)


def _favorite_at(state: AppState, args: list[str]) -> FavoriteBreakdown | None:
    index = _step_index(args)
    favorites = state.favorites.list_all()
    if index is None or index >= len(favorites):
        return None
    return favorites[index]


def cmd_fav(state: AppState, args: list[str]) -> str:
    if not args:
        return _FAV_USAGE

    sub, rest = args[0].lower(), args[1:]

    if sub == "save":
        plan = state.plan
        if plan is None:
            return "Nothing to save. Break a task down first."
        fav = state.favorites.save(plan.label, plan.response, plan.parsed.total_minutes)
        return f"Saved {fav.task!r} to favorites."

    if sub in ("list", "ls"):
        favorites = state.favorites.list_all()
        if not favorites:
            return "No favorites yet. Use /fav save after a breakdown."
        lines = ["Favorites:"]
        for i, fav in enumerate(favorites, start=1):
            lines.append(f"  {i}. {fav.task} (~{fav.total_estimated_minutes} min, used {fav.usage_count}x)")
        return "\n".join(lines)

    if sub == "search":
        query = " ".join(rest)
        found = state.favorites.search(query)
        if not found:
            return f"No favorites match {query!r}."
        return "\n".join([f"Favorites matching {query!r}:", *(f"  - {f.task}" for f in found)])

    if sub == "use":
        fav = _favorite_at(state, rest)
        if fav is None:
            return "Usage: /fav use <n> (see /fav list)."
        state.favorites.touch(fav.id)
        state.plan = Plan(
            label=fav.task,
            response=fav.response_text,
            parsed=parse_breakdown(fav.response_text),
            source="favorite",
        )
        return format_plan(state.plan)

    if sub in ("rm", "remove"):
        fav = _favorite_at(state, rest)
        if fav is None or not state.favorites.remove(fav.id):
            return "Usage: /fav rm <n> (see /fav list)."
        return f"Removed {fav.task!r} from favorites."

    if sub == "clear":
        state.favorites.clear()
        return "All favorites removed."

    return _FAV_USAGE


# ---- templates ----

_TPL_USAGE = (
    "Templates:\n"
    "  /tpl list [category]     - list templates\n"
    "  /tpl show <id>           - show a template's steps\n"
    "  /tpl use <id>            - load a template as the current plan\n"
    "  /tpl clone <id> [title]  - copy a preloaded template into your own\n"
    "  /tpl fav <id>            - star/unstar one of your templates\n"
    "  /tpl rm <id>             - delete one of your templates\n"
    "  /tpl search <q>          - search titles, descriptions and steps"
)


def _template_plan(t: Template | CustomTemplate) -> Plan:
    parsed = ParsedBreakdown(
        steps=[s.description for s in t.steps],
        minutes=[s.estimated_minutes for s in t.steps],
    )
    return Plan(label=t.title, response=render_steps(parsed), parsed=parsed, source="template")


def cmd_tpl(state: AppState, args: list[str]) -> str:
    if not args:
        return _TPL_USAGE

    sub, rest = args[0].lower(), args[1:]
    store = state.templates

    if sub in ("list", "ls"):
        items = store.list_all()
        if rest:
            try:
                category = Category(rest[0].lower())
            except ValueError:
                return f"Unknown category {rest[0]!r}. Categories: {', '.join(c.value for c in Category)}."
            items = [t for t in items if t.category == category]
        if not items:
            return "No templates."
        return "\n".join(["Templates:", *(_format_template_line(t) for t in items)])

    if sub == "search":
        query = " ".join(rest)
        found = store.search(query)
        if not found:
            return f"No templates match {query!r}."
        return "\n".join([f"Templates matching {query!r}:", *(_format_template_line(t) for t in found)])

    if not rest:
        return _TPL_USAGE
    template_id = rest[0]

    if sub == "show":
        t = store.get(template_id)
        if t is None:
            return f"Template not found: {template_id}"
        lines = [f"{t.title} - {t.description}"]
        for i, step in enumerate(t.steps, start=1):
            opt = " (optional)" if step.optional else ""
            lines.append(f"  {i}. {step.description} ({step.estimated_minutes} min){opt}")
        if t.tips:
            lines.append("Tips: " + "; ".join(t.tips))
        if t.accessibility_notes:
            lines.append("Notes: " + t.accessibility_notes)
        return "\n".join(lines)

    if sub == "use":
        t = store.get(template_id)
        if t is None:
            return f"Template not found: {template_id}"
        store.record_usage(template_id)
        state.plan = _template_plan(t)
        return format_plan(state.plan)

    if sub == "clone":
        title = " ".join(rest[1:]) or None
        try:
            custom = store.clone(template_id, title)
        except TemplateNotFoundError as e:
            return str(e)
        return f"Cloned as {custom.id} ({custom.title!r})."

    if sub == "fav":
        if not isinstance(store.get(template_id), CustomTemplate):
            return "Only your own templates can be starred (clone one first)."
        starred = store.toggle_favorite(template_id)
        return f"Template {template_id} {'starred' if starred else 'unstarred'}."

    if sub in ("rm", "delete"):
        if not store.delete(template_id):
            return f"Custom template not found: {template_id}"
        return f"Deleted template {template_id}."

    return _TPL_USAGE


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task, plan, cache and storage status.")
registry.register("cache", cmd_cache, help_text="Response cache stats: /cache | /cache clear.")
registry.register("breakdown", cmd_breakdown, help_text="Break a task into steps: /breakdown <task>.", aliases=["b"])
registry.register("start", cmd_start, help_text="Start timing the current plan.")
registry.register("timer", cmd_timer, help_text="Show the current task and step timers.", aliases=["t"])
registry.register("toggle", cmd_toggle, help_text="Start/pause the timer of step N: /toggle N.")
registry.register("done", cmd_done, help_text="Mark step N completed: /done N.")
registry.register("undo", cmd_undo, help_text="Mark step N not completed: /undo N.")
registry.register("finish", cmd_finish, help_text="Complete the whole task.")
registry.register("stop", cmd_stop, help_text="Stop and discard the current task.")
registry.register("fav", cmd_fav, help_text="Favorites: /fav save | list | search | use | rm | clear.")
registry.register("tpl", cmd_tpl, help_text="Templates: /tpl list | show | use | clone | fav | rm | search.")
