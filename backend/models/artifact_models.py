"""
Data models for study artifacts produced by the reasoning service.

These models parse service payloads, so they are strict about structure and
immutable once built.
"""
from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ArtifactModel(BaseModel):
    """Base for service payload models."""
    model_config = ConfigDict(frozen=True, extra="ignore")


class SummaryArtifact(ArtifactModel):
    """Executive summary of the source document"""
    overview: str
    key_takeaways: Tuple[str, ...]
    detailed_summary: str


class Entity(ArtifactModel):
    id: str
    type: Literal["concept", "person", "theory", "method"]
    name: str


class Relationship(ArtifactModel):
    source: str  # Entity.id
    target: str  # Entity.id
    relation: str


class KnowledgeGraphArtifact(ArtifactModel):
    """Entities and relationships, consumed by graph renderers as-is"""
    entities: Tuple[Entity, ...]
    relationships: Tuple[Relationship, ...]

    def entity_ids(self) -> set:
        return {entity.id for entity in self.entities}


class Subtopic(ArtifactModel):
    title: str
    key_concepts: Tuple[str, ...]

    @field_validator("key_concepts")
    @classmethod
    def _dedupe_concepts(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        # Concepts form a set; keep first occurrence order
        return tuple(dict.fromkeys(value))


class Topic(ArtifactModel):
    """One topic of the lecture breakdown"""
    topic_id: str
    title: str
    summary: str
    difficulty_level: float = Field(ge=1, le=5)  # 1 (basic) - 5 (advanced)
    importance_score: float = Field(ge=1, le=10)
    subtopics: Tuple[Subtopic, ...]


class TopicsArtifact(ArtifactModel):
    topics: Tuple[Topic, ...]

    def find(self, topic_id: str):
        for topic in self.topics:
            if topic.topic_id == topic_id:
                return topic
        return None


class QuizQuestion(ArtifactModel):
    """Multiple-choice question"""
    question_id: str
    question: str
    difficulty: float
    options: Tuple[str, ...]
    correct_answer: str
    explanation: str


class QuizArtifact(ArtifactModel):
    quiz: Tuple[QuizQuestion, ...]
