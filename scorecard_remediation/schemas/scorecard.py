# scorecard_remediation/schemas/scorecard.py
"""
Internal models for scorecards, entity scores and next steps.

The scorecard API has exposed more than one response convention over time, so
each model offers a `from_api` constructor that accepts every known wire shape
and produces the single normalized form used everywhere else.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-null value among `keys`"""
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


class RuleStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    NOT_EVALUATED = "NOT_EVALUATED"

    @classmethod
    def normalize(cls, value: Any) -> "RuleStatus":
        """Map any upstream status string onto the closed enumeration"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        return cls.NOT_EVALUATED


class EntityRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str = Field(min_length=1)
    kind: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_context(cls, context: Dict[str, Any]) -> "EntityRef":
        """Build from the host's `{tag, cid, type, name}` entity context"""
        return cls(
            tag=context.get("tag") or "",
            kind=context.get("type") or context.get("kind"),
            display_name=context.get("name") or context.get("displayName"),
        )


class RuleDefinition(BaseModel):
    title: Optional[str] = None
    level: Optional[str] = None
    expression: Optional[str] = None
    weight: Optional[float] = None
    failure_message: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RuleDefinition":
        level = payload.get("level")
        if isinstance(level, dict):
            level = level.get("name")
        return cls(
            title=payload.get("title"),
            level=level,
            expression=payload.get("expression"),
            weight=payload.get("weight"),
            failure_message=_first(payload, "failureMessage", "failure_message"),
        )


class ScorecardSummary(BaseModel):
    tag: str
    name: str = ""
    rules: List[RuleDefinition] = []

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ScorecardSummary":
        tag = _first(payload, "tag", "id", "slug")
        rules = payload.get("rules") or []
        return cls(
            tag=str(tag).strip() if tag is not None else "",
            name=payload.get("name") or "",
            rules=[RuleDefinition.from_api(r) for r in rules if isinstance(r, dict)],
        )


class RuleResult(BaseModel):
    title: Optional[str] = None
    id: Optional[str] = None
    status: RuleStatus = RuleStatus.NOT_EVALUATED
    level: Optional[str] = None
    failure_message: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return RuleStatus.normalize(v)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RuleResult":
        rule_id = _first(payload, "id", "ruleId")
        title = _first(payload, "title", "ruleTitle", "id")
        level = payload.get("level")
        if isinstance(level, dict):
            level = level.get("name")
        return cls(
            title=str(title) if title is not None else None,
            id=str(rule_id) if rule_id is not None else None,
            status=_first(payload, "status", "result"),
            level=level,
            failure_message=_first(payload, "failureMessage", "message"),
        )


class OverallScore(BaseModel):
    level: Optional[str] = None
    points: Optional[float] = None


class EntityScore(BaseModel):
    entity_tag: str
    scorecard_tag: str
    overall: OverallScore = OverallScore()
    rules: List[RuleResult] = []

    @classmethod
    def from_api(cls, scorecard_tag: str, entity_tag: str, payload: Dict[str, Any]) -> "EntityScore":
        """
        Normalize either score shape.

        The scorecard tag is always the one requested, never one echoed by the
        payload, so it lines up with the matching ScorecardSummary.
        """
        raw_rules = _first(payload, "rules", "ruleResults") or []

        overall = payload.get("overall")
        if isinstance(overall, dict):
            level = overall.get("level")
            points = overall.get("points")
        else:
            level = payload.get("level")
            points = payload.get("points")
        if isinstance(level, dict):
            level = level.get("name")

        return cls(
            entity_tag=entity_tag,
            scorecard_tag=scorecard_tag,
            overall=OverallScore(level=level, points=points),
            rules=[RuleResult.from_api(r) for r in raw_rules if isinstance(r, dict)],
        )

    def failing_rules(self) -> List[RuleResult]:
        return [r for r in self.rules if r.status == RuleStatus.FAIL]

    @property
    def all_passing(self) -> bool:
        return bool(self.rules) and all(r.status == RuleStatus.PASS for r in self.rules)


class ScoreLevel(BaseModel):
    name: Optional[str] = None
    number: Optional[int] = None


class RuleToComplete(BaseModel):
    identifier: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    expression: Optional[str] = None


def _unwrap_level(value: Any) -> Optional[ScoreLevel]:
    # Wire shape is {"level": {"name": ..., "number": ...}}
    if not isinstance(value, dict):
        return None
    inner = value.get("level", value)
    if not isinstance(inner, dict):
        return None
    return ScoreLevel(name=inner.get("name"), number=inner.get("number"))


class NextStepGroup(BaseModel):
    current_level: Optional[ScoreLevel] = None
    next_level: Optional[ScoreLevel] = None
    rules_to_complete: List[RuleToComplete] = []

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "NextStepGroup":
        rules = payload.get("rulesToComplete")
        if not isinstance(rules, list):
            rules = []
        return cls(
            current_level=_unwrap_level(payload.get("currentLevel")),
            next_level=_unwrap_level(payload.get("nextLevel")),
            rules_to_complete=[
                RuleToComplete(
                    identifier=r.get("identifier"),
                    title=r.get("title"),
                    description=r.get("description"),
                    expression=r.get("expression"),
                )
                for r in rules
                if isinstance(r, dict)
            ],
        )


def parse_next_steps(payload: Any) -> List[NextStepGroup]:
    """A missing or malformed `nextSteps` field is an empty sequence"""
    if not isinstance(payload, dict):
        return []
    groups = payload.get("nextSteps")
    if not isinstance(groups, list):
        return []
    return [NextStepGroup.from_api(g) for g in groups if isinstance(g, dict)]


def remaining_rules(groups: List[NextStepGroup]) -> int:
    return sum(len(g.rules_to_complete) for g in groups)


def flatten_rules(groups: List[NextStepGroup]) -> List[RuleToComplete]:
    return [rule for g in groups for rule in g.rules_to_complete]


def current_level(groups: List[NextStepGroup]) -> Optional[ScoreLevel]:
    return groups[0].current_level if groups else None


def next_level(groups: List[NextStepGroup]) -> Optional[ScoreLevel]:
    return groups[0].next_level if groups else None


class ComplianceView(BaseModel):
    entity_tag: str
    scorecards: List[ScorecardSummary] = []
    scores: Dict[str, EntityScore] = {}
    unscored: List[str] = []
