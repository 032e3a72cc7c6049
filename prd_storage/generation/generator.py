"""
Feature-list and PRD generation from a product brief.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ..services.types import PRD, Feature
from .completion import CompletionOptions, CompletionService
from .parsing import GeneratedFeatureSet, parse_feature_list, parse_prd

logger = logging.getLogger(__name__)


@dataclass
class Brief:
    """The product brief a feature list and PRD are generated from."""

    id: str
    product_name: str
    problem_statement: str = ""
    target_users: str = ""
    proposed_solution: str = ""
    product_objectives: str = ""
    platforms: list[str] = field(default_factory=list)

    def describe(self) -> str:
        lines = [f"Product: {self.product_name}"]
        for label, value in (
            ("Problem", self.problem_statement),
            ("Target users", self.target_users),
            ("Proposed solution", self.proposed_solution),
            ("Objectives", self.product_objectives),
        ):
            if value:
                lines.append(f"{label}: {value}")
        if self.platforms:
            lines.append(f"Platforms: {', '.join(self.platforms)}")
        return "\n".join(lines)


FEATURE_PROMPT = """Propose the features for the product below, prioritized with MoSCoW.

{brief}

Respond with a JSON object:
{{"features": {{"must": [{{"name": "", "description": "", "difficulty": "easy|medium|hard"}}],
"should": [], "could": [], "wont": []}}, "keyQuestions": ["..."]}}"""

PRD_PROMPT = """Write a Product Requirements Document for the product below.

{brief}

Cover one section per feature:
{features}

Respond with a JSON object {{"sections": [...]}} where every section has
featureName, featurePriority, overview {{purpose, successMetrics}}, userStories,
acceptanceCriteria {{guidelines, criteria}}, useCases, nonFunctionalRequirements,
dependencies, openQuestions and wireframeGuidelines."""


class FeatureGenerator:
    """Turns a brief into a prioritized feature list."""

    def __init__(
        self,
        completion: CompletionService,
        options: CompletionOptions | None = None,
    ) -> None:
        self.completion = completion
        self.options = options or CompletionOptions()

    async def generate(self, brief: Brief) -> GeneratedFeatureSet:
        """Generate and parse features for ``brief``.

        Raises:
            CompletionError: Provider failure
            MalformedResponseError: Unusable provider output
        """
        prompt = FEATURE_PROMPT.format(brief=brief.describe())
        text = await self.completion.complete(prompt, self.options)
        generated = parse_feature_list(text, brief.id)
        logger.info(
            f"Generated {len(generated.features)} features and "
            f"{len(generated.key_questions)} key questions for brief {brief.id}"
        )
        return generated


class PRDGenerator:
    """Turns a brief and its feature list into PRD content."""

    def __init__(
        self,
        completion: CompletionService,
        options: CompletionOptions | None = None,
    ) -> None:
        self.completion = completion
        self.options = options or CompletionOptions()

    @staticmethod
    def select_features(features: list[Feature]) -> list[Feature]:
        """Only must-have and should-have features get a PRD section."""
        return [f for f in features if f.priority in ("must", "should")]

    async def generate_content(self, brief: Brief, features: list[Feature]) -> dict[str, Any]:
        selected = self.select_features(features)
        feature_lines = json.dumps(
            [
                {"name": f.name, "description": f.description, "priority": f.priority}
                for f in selected
            ],
            indent=2,
        )
        prompt = PRD_PROMPT.format(brief=brief.describe(), features=feature_lines)
        text = await self.completion.complete(prompt, self.options)
        return parse_prd(text)

    async def generate(
        self,
        brief: Brief,
        features: list[Feature],
        feature_set_id: str,
    ) -> PRD:
        """Generate a PRD document ready to be saved."""
        content = await self.generate_content(brief, features)
        logger.info(f"Generated PRD with {len(content['sections'])} sections for brief {brief.id}")
        return PRD.create(
            brief_id=brief.id,
            feature_set_id=feature_set_id,
            content=content,
            title=brief.product_name or None,
        )
