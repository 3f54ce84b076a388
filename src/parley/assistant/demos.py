"""Canned prompts that show off the assistant: ``demo 1`` .. ``demo 6``."""

from __future__ import annotations

from typing import NamedTuple, Optional

from parley.cli import ui


class Demo(NamedTuple):
    number: int
    title: str
    prompt: str


DEMOS: tuple[Demo, ...] = (
    Demo(1, "Code Review", """\
Review this Python code and suggest improvements:
```python
class UserService:
    def get_user(self, user_id):
        db = Database()
        user = db.query("SELECT * FROM users WHERE id = " + str(user_id))
        return user
```"""),
    Demo(2, "Algorithm Help", (
        "Explain how to implement a binary search tree in Python with insert, "
        "search, and delete operations. Include code examples."
    )),
    Demo(3, "Bug Finding", """\
Find the bugs in this code:
```python
async def process_items(items, results=[]):
    for item in items:
        results.append(process_item(item))
    return results
```"""),
    Demo(4, "Design Pattern", (
        "Explain the Repository pattern and show me how to implement it in Python "
        "for a Product entity with SQLAlchemy."
    )),
    Demo(5, "API Design", (
        "Help me design a REST API for a todo list application. Include endpoints, "
        "HTTP methods, request/response bodies, and error handling."
    )),
    Demo(6, "Performance", (
        "What are the best practices for improving performance in a Python web API? "
        "Give me specific, actionable tips with code examples."
    )),
)

_BY_NUMBER = {str(demo.number): demo for demo in DEMOS}


def get_demo_prompt(command: str) -> Optional[str]:
    """Return the prompt for a ``demo <n>`` command, or None if n is unknown."""
    parts = command.split(None, 1)
    if len(parts) < 2:
        return None
    demo = _BY_NUMBER.get(parts[1].strip())
    return demo.prompt if demo else None


def show_demo_prompts() -> None:
    ui.rule("Demo Prompts")
    for demo in DEMOS:
        ui.plain(f"   [yellow]demo {demo.number}:[/yellow] {demo.title}")
    ui.plain()
    ui.dim("Type 'demo <number>' to run any of these, e.g. 'demo 1'")
    ui.rule()
