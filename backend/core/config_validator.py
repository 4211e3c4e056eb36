"""
Configuration validation for Studyforge backend.
Validates settings, prompt files and (optionally) the reasoning service on startup.
"""
from string import Formatter
from typing import List, Dict, Any, Set

import requests


class ConfigValidator:
    """Validates system configuration before pipeline execution."""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self, probe_service: bool = False) -> Dict[str, Any]:
        """
        Run all validation checks.

        Args:
            probe_service: Also check that the reasoning service answers

        Returns:
            {
                "valid": bool,
                "errors": List[str],
                "warnings": List[str]
            }
        """
        self.errors = []
        self.warnings = []

        # Run all checks
        self._validate_api_key()
        self._validate_prompt_files()
        self._validate_config_values()
        if probe_service and not self.errors:
            self._validate_gemini_connection()

        return {
            "valid": len(self.errors) == 0,
            "errors": self.errors,
            "warnings": self.warnings
        }

    def _validate_api_key(self):
        from core.config import GEMINI_API_KEY

        if not GEMINI_API_KEY:
            self.errors.append(
                "GEMINI_API_KEY is not set. Add it to your .env file."
            )

    def _validate_prompt_files(self):
        """Missing prompt files fall back to built-in templates."""
        from core.config import PROMPTS_DIR
        from core.prompt_manager import PROMPT_NAMES, PROMPT_PLACEHOLDERS

        if not PROMPTS_DIR.exists():
            self.warnings.append(
                f"Prompts directory not found: {PROMPTS_DIR}. Using built-in templates."
            )
            return

        for prompt_name in PROMPT_NAMES:
            path = PROMPTS_DIR / f"{prompt_name}.txt"
            if not path.exists():
                self.warnings.append(
                    f"Prompt file missing: {prompt_name}.txt. Using built-in template."
                )
            elif path.stat().st_size == 0:
                self.warnings.append(f"Prompt file is empty: {prompt_name}.txt")
            else:
                self._validate_placeholders(
                    prompt_name, path.read_text(encoding="utf-8"), PROMPT_PLACEHOLDERS[prompt_name]
                )

    def _validate_placeholders(self, prompt_name: str, template: str, allowed: Set[str]):
        """Unknown or malformed placeholders would fail at render time."""
        try:
            fields = {field for _, field, _, _ in Formatter().parse(template) if field is not None}
        except ValueError as e:
            self.errors.append(f"Prompt file {prompt_name}.txt is malformed: {e}")
            return

        unknown = sorted(fields - allowed)
        if unknown:
            self.errors.append(
                f"Prompt file {prompt_name}.txt uses unknown placeholders {unknown}; "
                "escape literal braces as {{ and }}"
            )

    def _validate_gemini_connection(self):
        """Check that the configured model is reachable with the configured key."""
        from core.config import GEMINI_API_KEY, GEMINI_BASE_URL, GEMINI_MODEL

        url = f"{GEMINI_BASE_URL.rstrip('/')}/models/{GEMINI_MODEL}"
        try:
            response = requests.get(url, params={"key": GEMINI_API_KEY}, timeout=5)
            response.raise_for_status()
        except requests.exceptions.ConnectionError:
            self.warnings.append(
                f"Cannot connect to the reasoning service at {GEMINI_BASE_URL}."
            )
        except requests.exceptions.Timeout:
            self.warnings.append(
                f"Reasoning service connection timeout at {GEMINI_BASE_URL}."
            )
        except requests.exceptions.HTTPError as e:
            self.errors.append(
                f"Reasoning service rejected model {GEMINI_MODEL}: {e.response.status_code}"
            )
        except requests.exceptions.RequestException as e:
            self.warnings.append(f"Reasoning service probe failed: {e}")

    def _validate_config_values(self):
        """Validate configuration value ranges and types."""
        from core.config import (
            HTTP_TIMEOUT_SEC,
            STAGE_TIMEOUT_SEC,
            RETRY_MAX_ATTEMPTS,
            RETRY_BASE_DELAY_SEC,
            RETRY_JITTER_MAX_SEC,
            QUIZ_QUESTION_COUNT,
            LLM_TEMPERATURE,
        )

        # Timeouts
        if HTTP_TIMEOUT_SEC <= 0:
            self.errors.append(f"HTTP_TIMEOUT_SEC ({HTTP_TIMEOUT_SEC}) must be > 0")
        if STAGE_TIMEOUT_SEC <= 0:
            self.errors.append(f"STAGE_TIMEOUT_SEC ({STAGE_TIMEOUT_SEC}) must be > 0")

        # Retry policy
        if RETRY_MAX_ATTEMPTS < 1:
            self.errors.append(f"RETRY_MAX_ATTEMPTS ({RETRY_MAX_ATTEMPTS}) must be >= 1")
        if RETRY_BASE_DELAY_SEC < 0 or RETRY_JITTER_MAX_SEC < 0:
            self.errors.append("RETRY_BASE_DELAY_SEC and RETRY_JITTER_MAX_SEC must be >= 0")

        if QUIZ_QUESTION_COUNT < 1:
            self.errors.append(f"QUIZ_QUESTION_COUNT ({QUIZ_QUESTION_COUNT}) must be >= 1")

        # Temperature validation
        if not (0.0 <= LLM_TEMPERATURE <= 1.0):
            self.warnings.append(
                f"LLM_TEMPERATURE ({LLM_TEMPERATURE}) outside normal range [0.0, 1.0]"
            )

# Global validator instance
config_validator = ConfigValidator()
