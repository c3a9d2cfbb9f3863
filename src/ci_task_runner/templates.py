"""Template catalog: the parameterised targets tasks run against.

A *Template* is identified by a key such as ``react-vite/default-ts`` and
carries the script used to generate its sandbox plus the framework metadata the
sandbox is expected to end up with. Each template owns one working directory
under the sandbox root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from .errors import ConfigError, UnknownTemplateError
from .utils import _template_dir_name


@dataclass(frozen=True)
class Template:
    """Immutable parameter set for one sandbox target."""
    id: str
    name: str
    script: str
    expected: dict[str, str] = field(default_factory=dict)
    cadence: tuple[str, ...] = ()
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def dir_name(self) -> str:
        return _template_dir_name(self.id)


def render_script(script: str, **values: Any) -> str:
    """Substitute ``{name}`` placeholders, leaving any other braces alone."""
    for key, value in values.items():
        script = script.replace("{" + key + "}", str(value))
    return script


def working_dir(sandbox_dir: Path, template_id: str) -> Path:
    return sandbox_dir / _template_dir_name(template_id)


# ---------------------------------------------------------------------------
# Built-in templates
# ---------------------------------------------------------------------------

CRA_DEFAULT_JS = Template(
    id="cra/default-js",
    name="Create React App (Javascript)",
    script="npx create-react-app {working_dir}",
    cadence=("ci", "daily", "weekly"),
    expected={
        "framework": "@storybook/cra",
        "renderer": "@storybook/react",
        "builder": "@storybook/builder-webpack5",
    },
)

CRA_DEFAULT_TS = Template(
    id="cra/default-ts",
    name="Create React App (Typescript)",
    script="npx create-react-app {working_dir} --template typescript",
    cadence=("ci", "daily", "weekly"),
    expected={
        "framework": "@storybook/cra",
        "renderer": "@storybook/react",
        "builder": "@storybook/builder-webpack5",
    },
)

REACT_VITE_DEFAULT_JS = Template(
    id="react-vite/default-js",
    name="React Vite (JS)",
    script="yarn create vite --template react {working_dir}",
    cadence=("ci", "daily", "weekly"),
    expected={
        "framework": "@storybook/react-vite",
        "renderer": "@storybook/react",
        "builder": "@storybook/builder-vite",
    },
)

REACT_VITE_DEFAULT_TS = Template(
    id="react-vite/default-ts",
    name="React Vite (TS)",
    script="yarn create vite --template react-ts {working_dir}",
    cadence=("ci", "daily", "weekly"),
    expected={
        "framework": "@storybook/react-vite",
        "renderer": "@storybook/react",
        "builder": "@storybook/builder-vite",
    },
)

VUE3_VITE_DEFAULT_JS = Template(
    id="vue3-vite/default-js",
    name="Vue3 Vite (JS)",
    script="yarn create vite --template vue {working_dir}",
    cadence=("ci", "daily", "weekly"),
    expected={
        "framework": "@storybook/vue3-vite",
        "renderer": "@storybook/vue3",
        "builder": "@storybook/builder-vite",
    },
)

HTML_WEBPACK_DEFAULT = Template(
    id="html-webpack/default",
    name="HTML Webpack5",
    script="yarn create webpack5-html {working_dir}",
    cadence=("daily", "weekly"),
    expected={
        "framework": "@storybook/html-webpack5",
        "renderer": "@storybook/html",
        "builder": "@storybook/builder-webpack5",
    },
)

SVELTE_VITE_DEFAULT_JS = Template(
    id="svelte-vite/default-js",
    name="Svelte Vite (JS)",
    script="yarn create vite --template svelte {working_dir}",
    cadence=("daily", "weekly"),
    expected={
        "framework": "@storybook/svelte-vite",
        "renderer": "@storybook/svelte",
        "builder": "@storybook/builder-vite",
    },
)


BUILTIN_TEMPLATES: dict[str, Template] = {
    t.id: t
    for t in [
        CRA_DEFAULT_JS,
        CRA_DEFAULT_TS,
        REACT_VITE_DEFAULT_JS,
        REACT_VITE_DEFAULT_TS,
        VUE3_VITE_DEFAULT_JS,
        HTML_WEBPACK_DEFAULT,
        SVELTE_VITE_DEFAULT_JS,
    ]
}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class TemplateCatalog:
    """Read-only lookup of templates by id.

    Starts with the built-in templates; extra templates may be registered or
    loaded from YAML before any task runs.
    """

    def __init__(self, templates: dict[str, Template] | None = None) -> None:
        self._templates: dict[str, Template] = {}
        for template in (BUILTIN_TEMPLATES if templates is None else templates).values():
            self.register(template)

    def get(self, template_id: str) -> Template:
        if template_id not in self._templates:
            raise UnknownTemplateError(template_id, self._templates.keys())
        return self._templates[template_id]

    def has(self, template_id: str) -> bool:
        return template_id in self._templates

    def list_templates(self) -> list[Template]:
        return [self._templates[key] for key in sorted(self._templates)]

    def register(self, template: Template) -> None:
        """Add or replace a template.

        Raises:
            ConfigError: If the template's working directory would collide
                with a different template's.
        """
        for other in self._templates.values():
            if other.id != template.id and other.dir_name == template.dir_name:
                raise ConfigError(
                    f"Template '{template.id}' would share the sandbox directory "
                    f"'{template.dir_name}' with '{other.id}'"
                )
        self._templates[template.id] = template

    # -- YAML loading --------------------------------------------------------

    def load_from_yaml(self, path: Path) -> None:
        """Load templates from YAML.

        *path* may be a single ``.yaml`` / ``.yml`` file or a directory of them.
        A file is either one template mapping (with an ``id``) or a mapping with
        a ``templates`` key holding ``{id: fields}``.
        """
        if path.is_dir():
            for child in sorted(path.iterdir()):
                if child.suffix in (".yaml", ".yml") and child.is_file():
                    self._load_single_yaml(child)
        elif path.is_file():
            self._load_single_yaml(path)
        else:
            raise ConfigError(f"Templates path does not exist: {path}")

    def _load_single_yaml(self, path: Path) -> None:
        try:
            with open(path, "r") as fh:
                data = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to parse templates file {path}: {exc}") from exc

        if not isinstance(data, dict):
            logger.warning("Templates YAML root is not a mapping: {}", path)
            return

        if isinstance(data.get("templates"), dict):
            entries = [
                dict(fields if isinstance(fields, dict) else {}, id=key)
                for key, fields in data["templates"].items()
            ]
        else:
            entries = [data]

        for raw in entries:
            template = _template_from_mapping(raw)
            if template is None:
                logger.warning("Skipping template entry without 'id' or 'script' in {}", path)
                continue
            self.register(template)


def _template_from_mapping(raw: dict[str, Any]) -> Template | None:
    template_id = str(raw.get("id") or "").strip()
    script = raw.get("script")
    if not template_id or not isinstance(script, str) or not script.strip():
        return None

    cadence = raw.get("cadence", ())
    if isinstance(cadence, str):
        cadence = (cadence,)

    _KNOWN = {"id", "name", "script", "expected", "cadence"}
    params = {k: v for k, v in raw.items() if k not in _KNOWN}

    expected = raw.get("expected")
    return Template(
        id=template_id,
        name=str(raw.get("name") or template_id),
        script=script.strip(),
        expected={str(k): str(v) for k, v in expected.items()} if isinstance(expected, dict) else {},
        cadence=tuple(str(c) for c in cadence),
        params=params,
    )
