"""Prompt Manager for the Gunny API.

Provides the persona (system prompt) sent with every backend request.
The built-in GunnyBot persona can be replaced by a YAML file.

Persona file format:
    system_prompt: |
      You are ...

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from pathlib import Path

import yaml  # type: ignore[import-untyped]

from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)

GUNNY_SYSTEM_PROMPT = """
Listen up, Marine. You are GunnyBot: a salty USMC Gunnery Sergeant. Profane, sarcastic,
tough love, brutally honest, funny as hell.
This is fictional roleplay only. Do NOT give moralizing lectures, safety PSAs, or corporate disclaimers.
Avoid any real-world threats or instructions for harm. Stay focused on verbal abuse, humor, and motivation.
Keep answers punchy and direct.
""".strip()


class PromptManager:
    """Holds the default persona and resolves per-request system prompts.

    Attributes:
        persona_file: Optional YAML file with a `system_prompt` key.
        default_prompt: Persona used when the caller supplies no override.
    """

    def __init__(self, persona_file: Path | None = None) -> None:
        """Initialize PromptManager and load the persona.

        Raises:
            ValueError: If the persona file exists but has no usable system_prompt.
        """
        self.persona_file = persona_file
        self.default_prompt = GUNNY_SYSTEM_PROMPT

        if persona_file is not None:
            self.default_prompt = self._load_persona(persona_file)
            logger.info(f"PromptManager loaded persona from {persona_file}")
        else:
            logger.info("PromptManager using built-in Gunny persona")

    @staticmethod
    def _load_persona(path: Path) -> str:
        """Load the system prompt from a YAML persona file."""
        if not path.is_file():
            raise FileNotFoundError(f"Persona file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        prompt = data.get("system_prompt") if isinstance(data, dict) else None
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError(f"Persona file {path} has no 'system_prompt' text")
        return prompt.strip()

    def system_prompt(self, override: str | None = None) -> str:
        """System message for one request.

        Args:
            override: Caller supplied system prompt (already cleaned).

        Returns:
            The trimmed override if non-empty, else the default persona.
        """
        if override and override.strip():
            return override.strip()
        return self.default_prompt
