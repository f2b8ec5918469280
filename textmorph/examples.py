# textmorph/examples.py
"""
Bundled example components.

Used by ``textmorph render NAME`` and by the tests. Each entry of `EXAMPLES`
maps a name to a factory returning the root tree and a one-line description.
"""

from typing import Any, Callable, Dict, Tuple

from .base import h
from .state import Context


# Reusable Button component
# Props: text, hl (highlight), on_click
def Button(ctx: Context):
    def on_enter(_event):
        on_click = ctx.props.get("on_click")
        if on_click:
            on_click()
        return ""  # consume the key press

    return h("text", {"hl": ctx.props.get("hl", "DiffAdd"), "nmap": {"<CR>": on_enter}}, ctx.props.get("text", ""))


def Counter(ctx: Context):
    """A counter with its own state and two buttons."""
    # Initialize state only on first render
    if ctx.phase == "mount":
        ctx.state = {"count": ctx.props.get("initial", 1)}
    count = ctx.state["count"]

    return [
        "Value: ",
        h.Number({"id": ctx.props.get("id")}, str(count)),
        " ",
        h(Button, {
            "text": " - ",
            "hl": "DiffDelete",
            "on_click": lambda: ctx.update({"count": count - 1}),
        }),
        " / ",
        h(Button, {
            "text": " + ",
            "hl": "DiffAdd",
            "on_click": lambda: ctx.update({"count": count + 1}),
        }),
    ]


def CounterApp(_ctx: Context):
    return [
        h["@markup.heading"]({}, "# Counter Example"),
        "\n\n",
        "Each counter below keeps its own state:",
        "\n\n",
        [h["@markup.heading.2"]({}, "Counter 1:"), "\n"],
        h(Counter),
        "\n\n",
        h["@markup.heading.2"]({}, "Counter 2:"),
        "\n",
        h(Counter),
        "\n\n",
        "Press <CR> on a button to change its counter.",
    ]


def TodoItem(ctx: Context):
    item = ctx.props["item"]
    mark = "x" if item["done"] else " "

    def toggle(_event):
        ctx.props["on_toggle"](item["id"])
        return ""

    def delete(_event):
        ctx.props["on_delete"](item["id"])
        return ""

    return [
        h("text", {
            "hl": "Comment" if item["done"] else "Normal",
            "nmap": {"<CR>": toggle, "dd": delete},
        }, f"[{mark}] {item['text']}"),
        "\n",
    ]


def TodoApp(ctx: Context):
    """A keyed list: items keep their identity when others are removed."""
    if ctx.phase == "mount":
        items = ctx.props.get("items") or ["write the docs", "review the patch"]
        ctx.state = {
            "items": [{"id": i + 1, "text": text, "done": False} for i, text in enumerate(items)],
            "draft": "",
            "next_id": len(items) + 1,
        }
    state = ctx.state

    def replace_items(items, **extra):
        ctx.update(dict(state, items=items, **extra))

    def on_toggle(item_id):
        replace_items([dict(i, done=not i["done"]) if i["id"] == item_id else i for i in state["items"]])

    def on_delete(item_id):
        replace_items([i for i in state["items"] if i["id"] != item_id])

    def on_draft_change(event):
        ctx.update(dict(state, draft=event.text))

    def on_submit(_event):
        draft = state["draft"].strip()
        if not draft:
            return ""
        item = {"id": state["next_id"], "text": draft, "done": False}
        replace_items(state["items"] + [item], draft="", next_id=state["next_id"] + 1)
        return ""

    return [
        h.Title({}, "# Todo"),
        "\n\n",
        [
            h(TodoItem, {"key": item["id"], "item": item, "on_toggle": on_toggle, "on_delete": on_delete})
            for item in state["items"]
        ],
        "New: ",
        h("text", {"id": "draft", "on_change": on_draft_change, "imap": {"<CR>": on_submit}}, state["draft"]),
    ]


EXAMPLES: Dict[str, Tuple[Callable[[], Any], str]] = {
    "counter": (lambda: h(CounterApp), "two independent counters with +/- buttons"),
    "todo": (lambda: h(TodoApp), "a keyed todo list with an input line"),
}
