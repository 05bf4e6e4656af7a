"""Renders markdown documents from the bundled Jinja templates."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from ..models import ConversionResult

TEMPLATES_DIR = Path(__file__).with_name("templates")


class DocumentBuilder:
    """Renders the setup guide uploaded next to a converted scaffold."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        directories = [str(TEMPLATES_DIR)]
        if templates_dir and templates_dir != TEMPLATES_DIR:
            directories.insert(0, str(templates_dir))
        self._env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render_setup(self, conversion: ConversionResult, *, title: str = "React + PHP setup") -> str:
        template = self._env.get_template("setup.md.j2")
        return template.render(title=title, conversion=conversion)


__all__ = ["DocumentBuilder", "TEMPLATES_DIR"]
