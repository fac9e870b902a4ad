"""Rich renderers for ServiceResult, chosen by ``result.op``.

Each renderer prints the body for one kind of operation into a console
from :func:`create_console`; :func:`render_result` returns the text. In
verbose mode the error flags and the telemetry span tree follow the body.
Ops without a dedicated renderer print their data as ``key: value`` lines.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mercury.output.console import (
    create_console,
    get_output,
    style_for_score,
    style_for_state,
)

if TYPE_CHECKING:
    from rich.console import Console

    from mercury.services.result import ServiceResult

_Renderer = Callable[["ServiceResult", "Console"], None]

# Span durations (ms) above which the timing is highlighted.
_SLOW_MS = 1000.0
_NOTABLE_MS = 100.0


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render *result* for a human; plain text when not writing to a terminal."""
    console = create_console()
    if result.ok:
        _OP_RENDERERS.get(result.op, _render_fields)(result, console)
    else:
        _render_error(result, console, with_detail=verbose)
    if verbose and result.meta:
        _render_meta(console, result.meta)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """One token per line: item ids, a count, an id, or ``OK: <op>``."""
    if not result.ok:
        if result.error is None:
            return f"ERROR {result.op}: Unknown error"
        return f"ERROR {result.op} [{result.error.code}]: {result.error.message}"

    data = result.data
    items = data.get("items")
    if isinstance(items, list):
        return "\n".join(str(i["id"]) for i in items if isinstance(i, dict) and "id" in i)
    for key in ("count", "id"):
        if key in data:
            return str(data[key])
    return f"OK: {result.op}"


# ── Building blocks ───────────────────────────────────────────────────


def _header(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "mercury.ok"), "  ", (result.op, "mercury.op")))


def _value_text(key: str, value: Any) -> Text:
    if isinstance(value, bool):
        return Text("yes" if value else "no", style="mercury.yes" if value else "mercury.no")
    if key == "id" or key.endswith("_id"):
        return Text(str(value), style="mercury.id")
    return Text(str(value))


def _kv(console: Console, key: str, value: Any) -> None:
    console.print(Text.assemble((f"  {key}: ", "mercury.key"), _value_text(key, value)))


def _kvs(console: Console, data: dict[str, Any], keys: Iterable[str]) -> None:
    """Print the listed keys whose values are set (not None or empty)."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            _kv(console, key, value)


def _span_lines(span: dict[str, Any], depth: int = 0) -> Iterable[str]:
    duration = float(span.get("duration_ms", 0.0))
    if duration > _SLOW_MS:
        style = "bold red"
    elif duration > _NOTABLE_MS:
        style = "yellow"
    else:
        style = "dim"
    line = f"{'    ' * (depth + 1)}[{style}]{duration:>8.2f}ms[/{style}]  {span.get('name', '?')}"
    notes = span.get("annotations") or {}
    if notes:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in notes.items()) + ")"
    yield line
    for child in span.get("children", []):
        yield from _span_lines(child, depth + 1)


def _render_meta(console: Console, meta: dict[str, Any]) -> None:
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in meta.items():
        if key == "telemetry":
            for line in _span_lines(value):
                console.print(line)
        else:
            console.print(f"    {key}: {value}")


def _user_table(items: list[dict[str, Any]], *, with_score: bool) -> Table:
    table = Table(pad_edge=False)
    table.add_column("ID", style="mercury.id", no_wrap=True)
    table.add_column("Name", style="mercury.name")
    table.add_column("Country")
    table.add_column("Mail")
    if with_score:
        table.add_column("Score", justify="right")

    for item in items:
        name = f"{item.get('first_name', '')} {item.get('last_name', '')}".strip()
        row: list[str | Text] = [
            str(item.get("id", "")),
            name,
            str(item.get("country", "")),
            str(item.get("mail", "")),
        ]
        if with_score:
            score = float(item.get("score", 0.0))
            row.append(Text(f"{score:.4f}", style=style_for_score(score)))
        table.add_row(*row)
    return table


# ── Renderers ─────────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, with_detail: bool) -> None:
    err = result.error
    line = Text.assemble(("ERROR", "mercury.error"), "  ", (result.op, "mercury.op"))
    if err is None:
        line.append(": Unknown error")
        console.print(line)
        return
    line.append(f" [{err.code}]", style="dim")
    line.append(f": {err.message}")
    console.print(line)
    if with_detail and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(f"    {key}: {value}")


def _render_fields(result: ServiceResult, console: Console) -> None:
    _header(console, result)
    for key, value in result.data.items():
        _kv(console, key, value)


def _render_user(result: ServiceResult, console: Console) -> None:
    user = result.data.get("user", {})
    lines = [f"{k}: {user[k]}" for k in ("mail", "country", "profile_picture") if user.get(k)]
    if result.data.get("fields_changed"):
        lines.append(f"changed: {', '.join(result.data['fields_changed'])}")
    title = f"{user.get('id', '?')}  {user.get('first_name', '')} {user.get('last_name', '')}"
    _header(console, result)
    console.print(Panel("\n".join(lines) or "(no profile fields)", title=title, expand=False))


def _render_page(result: ServiceResult, console: Console) -> None:
    d = result.data
    items = d.get("items", [])
    console.print(_user_table(items, with_score=result.op == "search"))
    console.print(
        f"\n{d.get('count', len(items))} of {d.get('total', len(items))} users"
        f" · page {int(d.get('page_index', 0)) + 1}/{d.get('page_count', 1)}"
    )


def _render_count(result: ServiceResult, console: Console) -> None:
    _header(console, result)
    _kvs(console, result.data, ("user_id",))
    _kv(console, "count", result.data.get("count", 0))


def _render_state(result: ServiceResult, console: Console) -> None:
    state = str(result.data.get("state", ""))
    _header(console, result)
    console.print(Text.assemble(("  state: ", "mercury.key"), (state, style_for_state(state))))


def _render_migration(result: ServiceResult, console: Console) -> None:
    d = result.data
    _header(console, result)
    _kvs(console, d, ("current", "head", "pending_count", "applied_count", "action", "backup_path"))
    for rev in d.get("pending", []):
        console.print(f"  [mercury.warning]pending[/mercury.warning] {rev['revision']}")
    if d.get("message"):
        console.print(f"  {d['message']}")


def _render_init(result: ServiceResult, console: Console) -> None:
    _header(console, result)
    _kvs(console, result.data, ("root", "config_path", "database_url", "vectors_path", "revision"))


_OP_RENDERERS: dict[str, _Renderer] = {
    # Users
    "create_user": _render_user,
    "get_user": _render_user,
    "update_user": _render_user,
    "list_users": _render_page,
    "count_users": _render_count,
    # Relation listings and search
    "friends": _render_page,
    "friend_requests": _render_page,
    "friend_suggestions": _render_page,
    "search": _render_page,
    "friends_count": _render_count,
    "friend_requests_count": _render_count,
    "friend_suggestions_count": _render_count,
    "relation_state": _render_state,
    # Maintenance
    "db_status": _render_migration,
    "db_upgrade": _render_migration,
    "db_stamp": _render_migration,
    "init": _render_init,
}
