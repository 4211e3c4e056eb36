"""
Extraction contracts: request templates, response schemas and semantic validators
for every reasoning-service stage.
"""
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Type

from pydantic import ValidationError

from core.errors import GenericFailure, SchemaViolation
from core.gemini_client import ReasoningRequest
from core.prompt_manager import prompt_manager
from models.artifact_models import (
    ArtifactModel,
    KnowledgeGraphArtifact,
    QuizArtifact,
    SummaryArtifact,
    Topic,
    TopicsArtifact,
)

Validator = Callable[[Any], None]

STRING = {"type": "STRING"}
NUMBER = {"type": "NUMBER"}


def _array(items: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "ARRAY", "items": items}


def _object(properties: Dict[str, Any], required: Optional[list] = None) -> Dict[str, Any]:
    return {
        "type": "OBJECT",
        "properties": properties,
        "required": required if required is not None else list(properties),
    }


@dataclass(frozen=True)
class ExtractionContract:
    """Declared request/response shape and semantic checks for one stage."""
    name: str
    prompt_name: str
    system_instruction: str
    response_schema: Dict[str, Any]
    response_model: Type[ArtifactModel]
    validators: Tuple[Validator, ...] = ()

    def render_prompt(self, **params: Any) -> str:
        template = prompt_manager.get_prompt(self.prompt_name)
        try:
            return template.format(**params).strip()
        except (KeyError, IndexError, ValueError) as e:
            # Literal braces in a prompt file must be doubled
            raise GenericFailure(
                f"Prompt template '{self.prompt_name}' cannot be rendered: {e!r}",
                stage=self.name,
            ) from e

    def build_request(self, model: str, **params: Any) -> ReasoningRequest:
        return ReasoningRequest(
            model=model,
            contents=self.render_prompt(**params),
            system_instruction=self.system_instruction,
            response_schema=self.response_schema,
        )

    def parse(self, raw: Optional[str]) -> ArtifactModel:
        """
        Parse and validate a raw service payload.

        Raises:
            SchemaViolation: empty payload, invalid JSON, structural mismatch
                or a failed semantic check.
        """
        if raw is None or not raw.strip():
            raise SchemaViolation(f"{self.name}: empty payload", stage=self.name)

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SchemaViolation(f"{self.name}: payload is not valid JSON ({e})", stage=self.name) from e

        if not isinstance(data, dict):
            raise SchemaViolation(
                f"{self.name}: expected a JSON object, got {type(data).__name__}",
                stage=self.name,
            )

        try:
            parsed = self.response_model.model_validate(data)
        except ValidationError as e:
            raise SchemaViolation(
                f"{self.name}: {e.error_count()} schema error(s): {e.errors()[0]['msg']}",
                stage=self.name,
            ) from e

        for validator in self.validators:
            validator(parsed)

        return parsed


def validate_graph_endpoints(graph: KnowledgeGraphArtifact) -> None:
    """Every relationship endpoint must reference a declared entity id."""
    entity_ids = graph.entity_ids()
    for relationship in graph.relationships:
        for endpoint in (relationship.source, relationship.target):
            if endpoint not in entity_ids:
                raise SchemaViolation(
                    f"knowledge_graph: relationship '{relationship.relation}' "
                    f"references unknown entity '{endpoint}'",
                    stage="knowledge_graph",
                )


def validate_topics_present(artifact: TopicsArtifact) -> None:
    if not artifact.topics:
        raise SchemaViolation("topics: no topics extracted", stage="topics")


def validate_quiz_answers(artifact: QuizArtifact) -> None:
    """Options are unique (at least two) and correct_answer matches exactly one."""
    if not artifact.quiz:
        raise SchemaViolation("quiz: no questions generated", stage="quiz")

    for question in artifact.quiz:
        if len(question.options) < 2:
            raise SchemaViolation(
                f"quiz: question {question.question_id} has fewer than 2 options",
                stage="quiz",
            )
        if len(set(question.options)) != len(question.options):
            raise SchemaViolation(
                f"quiz: question {question.question_id} has duplicate options",
                stage="quiz",
            )
        if question.options.count(question.correct_answer) != 1:
            raise SchemaViolation(
                f"quiz: correct_answer of question {question.question_id} "
                "does not match exactly one option",
                stage="quiz",
            )


SUMMARY_CONTRACT = ExtractionContract(
    name="summary",
    prompt_name="summary",
    system_instruction=(
        "You are an expert academic summarizer. Provide an overview, a list of key "
        "takeaways, and a detailed summary of the content. Return JSON only."
    ),
    response_schema=_object({
        "overview": STRING,
        "key_takeaways": _array(STRING),
        "detailed_summary": STRING,
    }),
    response_model=SummaryArtifact,
)

KNOWLEDGE_GRAPH_CONTRACT = ExtractionContract(
    name="knowledge_graph",
    prompt_name="knowledge_graph",
    system_instruction=(
        "You are a knowledge extraction engine. Return valid JSON only. "
        "No markdown. No commentary."
    ),
    response_schema=_object({
        "entities": _array(_object({
            "id": STRING,
            "type": {"type": "STRING", "enum": ["concept", "person", "theory", "method"]},
            "name": STRING,
        })),
        "relationships": _array(_object({
            "source": STRING,
            "target": STRING,
            "relation": STRING,
        })),
    }),
    response_model=KnowledgeGraphArtifact,
    validators=(validate_graph_endpoints,),
)

TOPICS_CONTRACT = ExtractionContract(
    name="topics",
    prompt_name="topic_extraction",
    system_instruction=(
        "You are an academic content analysis engine. Your job is to extract structured "
        "topics from educational material. Return valid JSON only. Do not add explanations. "
        "Do not wrap output in markdown. Follow the schema strictly."
    ),
    response_schema=_object({
        "topics": _array(_object({
            "topic_id": STRING,
            "title": STRING,
            "summary": STRING,
            "difficulty_level": NUMBER,
            "importance_score": NUMBER,
            "subtopics": _array(_object({
                "title": STRING,
                "key_concepts": _array(STRING),
            })),
        })),
    }),
    response_model=TopicsArtifact,
    validators=(validate_topics_present,),
)

QUIZ_CONTRACT = ExtractionContract(
    name="quiz",
    prompt_name="quiz_generation",
    system_instruction=(
        "You are a university-level assessment generation engine. Return valid JSON only. "
        "No explanations. No markdown. Strictly follow schema. Ensure correct_answer matches "
        "exactly one option. Shuffle correct answer position."
    ),
    response_schema=_object({
        "quiz": _array(_object({
            "question_id": STRING,
            "question": STRING,
            "difficulty": NUMBER,
            "options": _array(STRING),
            "correct_answer": STRING,
            "explanation": STRING,
        })),
    }),
    response_model=QuizArtifact,
    validators=(validate_quiz_answers,),
)


def quiz_prompt_params(topic: Topic, question_count: int, directive: str = "") -> Dict[str, Any]:
    """Template parameters for QUIZ_CONTRACT."""
    subtopics = "\n".join(
        f"- {subtopic.title}: {', '.join(subtopic.key_concepts)}"
        for subtopic in topic.subtopics
    )
    return {
        "directive": directive,
        "question_count": question_count,
        "title": topic.title,
        "difficulty": topic.difficulty_level,
        "summary": topic.summary,
        "subtopics": subtopics,
    }
