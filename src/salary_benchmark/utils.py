"""Prompt templates kept as YAML files next to the package."""

from dataclasses import dataclass
from pathlib import Path

import yaml


class PromptLoadError(Exception):
    """Exception raised when a prompt file cannot be loaded or rendered."""
    pass


@dataclass(frozen=True)
class PromptTemplate:
    """A prompt template with the metadata declared in its YAML file."""

    name: str
    description: str
    template: str

    def render(self, **values: str) -> str:
        """
        Fill the template's ``{placeholders}``.

        Raises:
            PromptLoadError: If a placeholder has no value
        """
        try:
            return self.template.format(**values)
        except (KeyError, IndexError) as e:
            raise PromptLoadError(f"Prompt '{self.name}' has an unfilled placeholder: {e}")


def get_prompts_directory() -> Path:
    return Path(__file__).parent / "prompts"


def load_prompt_from_yaml(prompt_name: str, prompts_dir: Path | None = None) -> PromptTemplate:
    """
    Load a prompt template and its metadata from ``<prompts_dir>/<prompt_name>.yaml``.

    The file must map ``prompt`` to the template text. ``name`` and
    ``description`` are optional; ``name`` defaults to the file stem.

    Raises:
        PromptLoadError: If the file is missing, unreadable or malformed
    """
    prompt_file = (prompts_dir or get_prompts_directory()) / f"{prompt_name}.yaml"
    if not prompt_file.is_file():
        raise PromptLoadError(f"Prompt file not found: {prompt_file}")

    try:
        data = yaml.safe_load(prompt_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise PromptLoadError(f"Failed to parse YAML file {prompt_file}: {e}")
    except OSError as e:
        raise PromptLoadError(f"Failed to read file {prompt_file}: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("prompt"), str):
        raise PromptLoadError(f"Expected a mapping with a 'prompt' string in {prompt_file}")

    return PromptTemplate(
        name=str(data.get("name") or prompt_name),
        description=str(data.get("description") or ""),
        template=data["prompt"],
    )


def render_prompt(prompt_name: str, **values: str) -> str:
    """Load a packaged prompt and fill its placeholders."""
    return load_prompt_from_yaml(prompt_name).render(**values)
