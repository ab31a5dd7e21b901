"""
Data models for the clinical insights pipeline.

These Pydantic models define the structures that flow through the
orchestrator: extracted case parameters, the per-branch results and the
aggregated insight bundle returned to callers.
"""

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# Caps applied when a bundle is assembled
MAX_SIMILAR_CASES = 3
MAX_ARTICLES = 5
MAX_EXPERTS = 3
MAX_COMMUNITIES = 3
MAX_ORGANIZATIONS = 5


_SCALARS = (str, int, float, bool)


def coerce_str_list(value) -> list[str]:
    """
    Normalize LLM output into a list of non-empty strings.

    Raises:
        ValueError: If the value or any item is a mapping or nested sequence
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple, set)):
        items = [v for v in value if v is not None]
        if not all(isinstance(v, _SCALARS) for v in items):
            raise ValueError("list items must be scalars")
        return [str(v).strip() for v in items if str(v).strip()]
    if isinstance(value, _SCALARS):
        return [str(value)]
    raise ValueError(f"expected a string or list, got {type(value).__name__}")


def set_union(prior: list[str], new: list[str]) -> list[str]:
    """
    Merge two term lists, dropping duplicates.

    Prior terms come first, then any new terms not already present.
    """
    merged: list[str] = []
    for term in [*prior, *new]:
        if term not in merged:
            merged.append(term)
    return merged


class CaseParameters(BaseModel):
    """Structured clinical facts extracted from a free-text query."""

    age: Optional[str] = Field(default=None, description="Age if mentioned, as text")
    diagnosis: list[str] = Field(default_factory=list, description="Conditions / diagnoses")
    interventions: list[str] = Field(default_factory=list, description="Treatments tried")
    challenges: list[str] = Field(default_factory=list, description="Difficulties mentioned")
    goals: list[str] = Field(default_factory=list, description="Treatment goals")

    @field_validator("age", mode="before")
    @classmethod
    def _age_as_text(cls, value):
        if value is None or value == "":
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValueError(f"age must be text or a whole number, got {type(value).__name__}")
        return str(value)

    @field_validator("diagnosis", "interventions", "challenges", "goals", mode="before")
    @classmethod
    def _as_list(cls, value):
        return coerce_str_list(value)

    @classmethod
    def empty(cls) -> "CaseParameters":
        """Zero-value parameters used when extraction fails."""
        return cls(diagnosis=[], interventions=[], challenges=[], goals=[])

    def keywords(self, include_goals: bool = True) -> list[str]:
        """Lower-cased matching keywords from diagnosis, challenges and goals."""
        terms = [*self.diagnosis, *self.challenges]
        if include_goals:
            terms.extend(self.goals)
        return [t.lower() for t in terms if t]

    def merged_with(self, prior: "CaseParameters") -> "CaseParameters":
        """
        Return a copy whose diagnosis, challenges and goals are the set
        union of the prior parameters and these ones.
        """
        return self.model_copy(update={
            "diagnosis": set_union(prior.diagnosis, self.diagnosis),
            "challenges": set_union(prior.challenges, self.challenges),
            "goals": set_union(prior.goals, self.goals),
        })


class SimilarCase(BaseModel):
    """A previously published case similar to the query."""

    id: str
    title: str
    content: str = Field(..., description="Redacted, truncated excerpt")
    author_name: str
    author_role: str
    similarity: float = Field(..., ge=0.0, le=1.0)
    relevance_explanation: str
    years_of_experience: Optional[int] = None


class LiteratureArticle(BaseModel):
    """A ranked article from the external literature repository."""

    id: str = Field(..., description="PubMed ID")
    title: str
    abstract: str = Field(default="", max_length=503)
    authors: list[str] = Field(default_factory=list, max_length=3)
    journal: str = ""
    year: int = 0
    doi: Optional[str] = None
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)


class ActivityCounts(BaseModel):
    """Contribution counters for a platform profile."""

    posts: int = 0
    comments: int = 0


class ExpertMatch(BaseModel):
    """A platform professional ranked against the case."""

    id: str
    name: str
    role: str
    specializations: list[str] = Field(default_factory=list)
    years_of_experience: int = 0
    trust_score: float = 0.0
    organization: Optional[str] = None
    relevance_score: float = Field(default=0.0, description="Keyword + vector blend, unbounded")
    activity: ActivityCounts = Field(default_factory=ActivityCounts)


class CommunityMatch(BaseModel):
    """A peer community relevant to the case."""

    id: str
    name: str
    slug: str
    description: str = ""
    member_count: int = 0
    tags: list[str] = Field(default_factory=list)
    match_reason: str


class OrganizationMatch(BaseModel):
    """An organization owning communities relevant to the case."""

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None
    community_count: int = 0
    member_count: int = 0
    match_reason: str


class Availability(BaseModel):
    """Where and how a recommendation can be accessed."""

    region: bool = Field(default=True, validation_alias=AliasChoices("region", "india"))
    telehealth: bool = False
    languages: list[str] = Field(default_factory=lambda: ["English"])


class Recommendation(BaseModel):
    """An actionable, evidence-based recommendation."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    action_steps: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("action_steps", "actionSteps"),
    )
    priority: Literal["high", "medium", "low"] = "medium"
    timeline: str = "Varies"
    availability: Availability = Field(default_factory=Availability)
    cost_estimate: str = Field(
        default="Varies",
        validation_alias=AliasChoices("cost_estimate", "costEstimate"),
    )

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            # LLMs sometimes echo the template "high|medium|low"
            if "|" in value:
                value = value.split("|")[0]
        return value

    @field_validator("action_steps", mode="before")
    @classmethod
    def _steps_as_list(cls, value):
        return coerce_str_list(value)


class RecommendationSet(BaseModel):
    """Primary recommendations plus alternative approaches."""

    recommendations: list[Recommendation] = Field(default_factory=list)
    alternatives: list[Recommendation] = Field(default_factory=list)
    is_fallback: bool = Field(default=False, exclude=True)


class InsightBundle(BaseModel):
    """
    Aggregated result of one pipeline run.

    Immutable once constructed. Use `assemble()` to build one from raw
    branch outputs so caps, confidence and citations are applied.
    """

    model_config = ConfigDict(frozen=True)

    case_analysis: CaseParameters
    similar_cases: list[SimilarCase] = Field(default_factory=list, max_length=MAX_SIMILAR_CASES)
    articles: list[LiteratureArticle] = Field(default_factory=list, max_length=MAX_ARTICLES)
    recommendations: list[Recommendation] = Field(default_factory=list)
    alternatives: list[Recommendation] = Field(default_factory=list)
    experts: list[ExpertMatch] = Field(default_factory=list, max_length=MAX_EXPERTS)
    communities: list[CommunityMatch] = Field(default_factory=list, max_length=MAX_COMMUNITIES)
    organizations: list[OrganizationMatch] = Field(default_factory=list, max_length=MAX_ORGANIZATIONS)
    confidence: float = Field(default=0.5, ge=0.5, le=0.95)
    citations: list[str] = Field(default_factory=list)

    @classmethod
    def assemble(
        cls,
        case_analysis: CaseParameters,
        similar_cases: list[SimilarCase],
        articles: list[LiteratureArticle],
        recommendations: RecommendationSet,
        experts: list[ExpertMatch],
        communities: list[CommunityMatch],
        organizations: list[OrganizationMatch],
    ) -> "InsightBundle":
        """Build a bundle from uncapped branch results."""
        return cls(
            case_analysis=case_analysis,
            similar_cases=similar_cases[:MAX_SIMILAR_CASES],
            articles=articles[:MAX_ARTICLES],
            recommendations=recommendations.recommendations,
            alternatives=recommendations.alternatives,
            experts=experts[:MAX_EXPERTS],
            communities=communities[:MAX_COMMUNITIES],
            organizations=organizations[:MAX_ORGANIZATIONS],
            confidence=calculate_confidence(len(similar_cases), len(articles)),
            citations=compile_citations(articles),
        )


def calculate_confidence(num_similar_cases: int, num_articles: int) -> float:
    """
    Confidence grows with supporting evidence.

    Starts at 0.5, similar cases add up to 0.45 and articles up to 0.5,
    with an overall ceiling of 0.95.
    """
    case_score = min(num_similar_cases * 0.15, 0.45)
    article_score = min(num_articles * 0.10, 0.50)
    return round(min(0.95, 0.5 + case_score + article_score), 4)


def format_citation(article: LiteratureArticle) -> str:
    """Format an article as a short reference string."""
    return f"{', '.join(article.authors)}, ({article.year}). {article.title}. {article.journal}."


def compile_citations(articles: list[LiteratureArticle]) -> list[str]:
    return [format_citation(article) for article in articles]
