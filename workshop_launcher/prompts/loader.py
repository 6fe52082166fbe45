"""
Loads the step prompts (system instructions and user templates) from disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined

BASE_DIR = Path(__file__).resolve().parent


class PromptLoader:
    """Renders `system/<name>.md` and `templates/<name>_user.md` via Jinja2."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        prompt_dir = Path(base_dir) if base_dir else BASE_DIR
        if not prompt_dir.is_dir():
            raise FileNotFoundError(f"prompt directory not found: {prompt_dir}")
        self.base_dir = prompt_dir
        self.env = Environment(
            loader=FileSystemLoader(str(prompt_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def system(self, name: str) -> str:
        return self.render(f"system/{name}.md", {}).strip()

    def user(self, name: str, context: Dict[str, Any]) -> str:
        return self.render(f"templates/{name}_user.md", context).strip()

    def render(self, relative_path: str, context: Dict[str, Any]) -> str:
        template = self.env.get_template(relative_path)
        return template.render(**context)
