"""
Centralized prompt file management with fallback templates.
"""
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Placeholders each template may use
PROMPT_PLACEHOLDERS = {
    "summary": {"text"},
    "knowledge_graph": {"text"},
    "topic_extraction": {"text"},
    "quiz_generation": {"directive", "question_count", "title", "difficulty", "summary", "subtopics"},
}
PROMPT_NAMES = list(PROMPT_PLACEHOLDERS)


class PromptManager:
    """Manages prompt file loading with consistent fallback behavior."""

    def __init__(self, prompts_dir: Optional[Path] = None):
        if prompts_dir is None:
            from core.config import PROMPTS_DIR
            prompts_dir = PROMPTS_DIR
        self.prompts_dir = prompts_dir
        self.loaded_prompts: Dict[str, str] = {}

        # Fallback templates
        self.fallback_templates = {
            "summary": self._get_summary_fallback(),
            "knowledge_graph": self._get_knowledge_graph_fallback(),
            "topic_extraction": self._get_topic_extraction_fallback(),
            "quiz_generation": self._get_quiz_generation_fallback(),
        }

    def get_prompt(self, prompt_name: str) -> str:
        """
        Load prompt by name with fallback.

        Args:
            prompt_name: Name of prompt file (without .txt extension)

        Returns:
            Prompt template string
        """
        # Return cached if already loaded
        if prompt_name in self.loaded_prompts:
            return self.loaded_prompts[prompt_name]

        # Try to load from file
        prompt_file = self.prompts_dir / f"{prompt_name}.txt"

        if prompt_file.exists():
            try:
                template = prompt_file.read_text(encoding="utf-8")

                # Validate not empty
                if not template.strip():
                    raise ValueError(f"Prompt file is empty: {prompt_file}")

                # Cache and return
                self.loaded_prompts[prompt_name] = template
                return template

            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load prompt file {prompt_file}: {e}")
                # Fall through to fallback

        # Use fallback template
        if prompt_name in self.fallback_templates:
            logger.debug(f"Using fallback template for: {prompt_name}")
            template = self.fallback_templates[prompt_name]
            self.loaded_prompts[prompt_name] = template
            return template

        # No fallback available
        raise FileNotFoundError(
            f"Prompt file not found and no fallback available: {prompt_name}.txt. "
            f"Expected at: {prompt_file}"
        )

    def _get_summary_fallback(self) -> str:
        """Fallback template for the executive summary."""
        return """Provide a high-level academic summary of this lecture.
Your response must be structured JSON.

Text:
\"\"\"
{text}
\"\"\""""

    def _get_knowledge_graph_fallback(self) -> str:
        """Fallback template for knowledge graph extraction."""
        return """Extract entities and relationships from the following academic text. Return structured JSON.
Every relationship source and target must be the id of an entity you listed.

Text:
\"\"\"
{text}
\"\"\""""

    def _get_topic_extraction_fallback(self) -> str:
        """Fallback template for topic extraction."""
        return """Analyze the following university-level lecture content.
Your task:
1. Extract main topics.
2. Extract subtopics for each topic.
3. Assign a difficulty level from 1 (basic) to 5 (advanced).
4. Estimate importance score from 1-10.
5. Return structured JSON.

Lecture Content:
\"\"\"
{text}
\"\"\""""

    def _get_quiz_generation_fallback(self) -> str:
        """Fallback template for quiz generation."""
        return """{directive}
Generate {question_count} multiple-choice questions for the following topic.
Rules:
- Questions must test understanding, not memorization.
- Include one clearly correct answer.
- Distractors must be plausible.
- Difficulty level must match the given difficulty.
- Avoid ambiguous phrasing.

Topic:
Title: {title}
Difficulty: {difficulty}
Summary: {summary}

Subtopics:
{subtopics}"""


# Global prompt manager instance
prompt_manager = PromptManager()
