"""
Typed growth manifests.

``analyze`` writes the manifest the model produced, stamped with a
``version`` and a ``generated_at`` timestamp.  ``plan``, ``build`` and
``status`` read it back through ``GrowthManifest.from_dict``, which enforces
what those commands rely on: ``project_name``, ``tech_stack.language`` and
the required fields of every listed feature, opportunity and leak.

Optional fields default to ``None``, lists that are absent or ``null``
become empty lists, and unknown fields are ignored.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .errors import ManifestError

GROWTH_MANIFEST_VERSION = "1.0"
DOCS_MANIFEST_VERSION = "2.0"

_NAIVE_FORMATS = ("%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S")

T = TypeVar("T")


# ----------------
# Field readers
# ----------------
def _path(where: str, key: str) -> str:
    return f"{where}.{key}" if where else key


def _required_str(data: Dict[str, Any], key: str, where: str = "") -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ManifestError(f"Manifest field '{_path(where, key)}' is required and must be a string")
    return value


def _optional_str(data: Dict[str, Any], key: str, where: str = "") -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ManifestError(f"Manifest field '{_path(where, key)}' must be a string")
    return value


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ManifestError(f"Manifest field '{path}' must be a number")
    return float(value)


def _string_list(data: Dict[str, Any], key: str, where: str = "") -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ManifestError(f"Manifest field '{_path(where, key)}' must be a list of strings")
    return list(value)


def _object(value: Any, path: str) -> Dict[str, Any]:
    if value is None:
        raise ManifestError(f"Manifest field '{path}' is required")
    if not isinstance(value, dict):
        raise ManifestError(f"Manifest field '{path}' must be an object")
    return value


def _optional_object(data: Dict[str, Any], key: str, parse: Callable[[Dict[str, Any], str], T]) -> Optional[T]:
    if data.get(key) is None:
        return None
    return parse(_object(data[key], key), key)


def _records(data: Dict[str, Any], key: str, parse: Callable[[Dict[str, Any], str], T]) -> List[T]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"Manifest field '{key}' must be a list")
    return [parse(_object(item, f"{key}[{i}]"), f"{key}[{i}]") for i, item in enumerate(value)]


def parse_generated_at(value: Any) -> dt.datetime:
    """Parse an RFC 3339 or naive timestamp; naive values are taken as local time."""
    if not isinstance(value, str):
        raise ManifestError(f"unable to parse datetime: {value!r}")
    text = value.strip()
    parsed: Optional[dt.datetime] = None
    try:
        parsed = dt.datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text)
    except ValueError:
        for fmt in _NAIVE_FORMATS:
            try:
                parsed = dt.datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        raise ManifestError(f"unable to parse datetime: {value}")
    return parsed if parsed.tzinfo is not None else parsed.astimezone()


def _now() -> dt.datetime:
    return dt.datetime.now().astimezone()


def _generated_at(data: Dict[str, Any]) -> dt.datetime:
    value = data.get("generated_at")
    return _now() if value is None else parse_generated_at(value)


# ----------------
# Models
# ----------------
@dataclass
class TechStack:
    """Technologies detected in the project.

    Attributes
    ----------
    language: str
        Primary programming language.  The only required field.

    framework, database, auth, deployment, package_manager: str | None
        Detected tools, when the model could name one.

    services: List[str]
        Third-party services the project integrates with.
    """

    language: str
    framework: Optional[str] = None
    database: Optional[str] = None
    auth: Optional[str] = None
    deployment: Optional[str] = None
    package_manager: Optional[str] = None
    services: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Dict[str, Any], where: str = "tech_stack") -> "TechStack":
        return TechStack(
            language=_required_str(data, "language", where),
            framework=_optional_str(data, "framework", where),
            database=_optional_str(data, "database", where),
            auth=_optional_str(data, "auth", where),
            deployment=_optional_str(data, "deployment", where),
            package_manager=_optional_str(data, "package_manager", where),
            services=_string_list(data, "services", where),
        )


@dataclass
class GrowthFeature:
    """An existing feature that already drives growth."""

    feature_name: str
    file_path: str
    detected_intent: str
    confidence_score: float
    entry_point: Optional[str] = None
    growth_potential: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Dict[str, Any], where: str) -> "GrowthFeature":
        return GrowthFeature(
            feature_name=_required_str(data, "feature_name", where),
            file_path=_required_str(data, "file_path", where),
            detected_intent=_required_str(data, "detected_intent", where),
            confidence_score=_number(data.get("confidence_score"), _path(where, "confidence_score")),
            entry_point=_optional_str(data, "entry_point", where),
            growth_potential=_string_list(data, "growth_potential", where),
        )


@dataclass
class GrowthOpportunity:
    feature_name: str
    description: str
    priority: str

    @staticmethod
    def from_dict(data: Dict[str, Any], where: str) -> "GrowthOpportunity":
        return GrowthOpportunity(
            feature_name=_required_str(data, "feature_name", where),
            description=_required_str(data, "description", where),
            priority=_required_str(data, "priority", where),
        )


@dataclass
class RevenueLeakage:
    issue: str
    impact: str
    recommendation: str
    file_path: Optional[str] = None

    @staticmethod
    def from_dict(data: Dict[str, Any], where: str) -> "RevenueLeakage":
        return RevenueLeakage(
            issue=_required_str(data, "issue", where),
            impact=_required_str(data, "impact", where),
            recommendation=_required_str(data, "recommendation", where),
            file_path=_optional_str(data, "file_path", where),
        )


@dataclass
class IndustryInfo:
    primary: Optional[str] = None
    secondary: List[str] = field(default_factory=list)
    confidence: Optional[float] = None
    evidence: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Dict[str, Any], where: str = "industry") -> "IndustryInfo":
        confidence = data.get("confidence")
        return IndustryInfo(
            primary=_optional_str(data, "primary", where),
            secondary=_string_list(data, "secondary", where),
            confidence=None if confidence is None else _number(confidence, _path(where, "confidence")),
            evidence=_string_list(data, "evidence", where),
        )


@dataclass
class ProductOverview:
    tagline: Optional[str] = None
    value_proposition: Optional[str] = None
    target_audience: Optional[str] = None

    @staticmethod
    def from_dict(data: Dict[str, Any], where: str = "product_overview") -> "ProductOverview":
        return ProductOverview(
            tagline=_optional_str(data, "tagline", where),
            value_proposition=_optional_str(data, "value_proposition", where),
            target_audience=_optional_str(data, "target_audience", where),
        )


@dataclass
class Feature:
    """A user-facing feature documented for the product page."""

    name: str
    description: str
    file_path: Optional[str] = None
    usage_example: Optional[str] = None
    category: Optional[str] = None

    @staticmethod
    def from_dict(data: Dict[str, Any], where: str) -> "Feature":
        return Feature(
            name=_required_str(data, "name", where),
            description=_required_str(data, "description", where),
            file_path=_optional_str(data, "file_path", where),
            usage_example=_optional_str(data, "usage_example", where),
            category=_optional_str(data, "category", where),
        )


def _serialise(manifest: Any) -> Dict[str, Any]:
    data = asdict(manifest)
    data["generated_at"] = manifest.generated_at.isoformat()
    return data


@dataclass
class GrowthManifest:
    """The result of ``analyze`` as read by the planning commands.

    Attributes
    ----------
    project_name: str
        Required.

    tech_stack: TechStack
        Required, with at least ``language``.

    version: str
        Manifest format version, ``"1.0"`` when absent.

    generated_at: datetime
        Timezone-aware creation time.  Naive stored values are read as local
        time; a missing value defaults to now.
    """

    project_name: str
    tech_stack: TechStack
    version: str = GROWTH_MANIFEST_VERSION
    description: Optional[str] = None
    industry: Optional[IndustryInfo] = None
    current_growth_features: List[GrowthFeature] = field(default_factory=list)
    growth_opportunities: List[GrowthOpportunity] = field(default_factory=list)
    revenue_leakage: List[RevenueLeakage] = field(default_factory=list)
    generated_at: dt.datetime = field(default_factory=_now)

    @staticmethod
    def from_dict(data: Any) -> "GrowthManifest":
        if not isinstance(data, dict):
            raise ManifestError("Manifest must be a JSON object")
        return GrowthManifest(
            project_name=_required_str(data, "project_name"),
            tech_stack=TechStack.from_dict(_object(data.get("tech_stack"), "tech_stack")),
            version=_optional_str(data, "version") or GROWTH_MANIFEST_VERSION,
            description=_optional_str(data, "description"),
            industry=_optional_object(data, "industry", IndustryInfo.from_dict),
            current_growth_features=_records(data, "current_growth_features", GrowthFeature.from_dict),
            growth_opportunities=_records(data, "growth_opportunities", GrowthOpportunity.from_dict),
            revenue_leakage=_records(data, "revenue_leakage", RevenueLeakage.from_dict),
            generated_at=_generated_at(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _serialise(self)


@dataclass
class DocsManifest:
    """A growth manifest extended with product documentation (format ``"2.0"``)."""

    project_name: str
    tech_stack: TechStack
    version: str = DOCS_MANIFEST_VERSION
    description: Optional[str] = None
    product_overview: Optional[ProductOverview] = None
    industry: Optional[IndustryInfo] = None
    features: List[Feature] = field(default_factory=list)
    current_growth_features: List[GrowthFeature] = field(default_factory=list)
    growth_opportunities: List[GrowthOpportunity] = field(default_factory=list)
    generated_at: dt.datetime = field(default_factory=_now)

    @staticmethod
    def from_dict(data: Any) -> "DocsManifest":
        if not isinstance(data, dict):
            raise ManifestError("Manifest must be a JSON object")
        return DocsManifest(
            project_name=_required_str(data, "project_name"),
            tech_stack=TechStack.from_dict(_object(data.get("tech_stack"), "tech_stack")),
            version=_optional_str(data, "version") or DOCS_MANIFEST_VERSION,
            description=_optional_str(data, "description"),
            product_overview=_optional_object(data, "product_overview", ProductOverview.from_dict),
            industry=_optional_object(data, "industry", IndustryInfo.from_dict),
            features=_records(data, "features", Feature.from_dict),
            current_growth_features=_records(data, "current_growth_features", GrowthFeature.from_dict),
            growth_opportunities=_records(data, "growth_opportunities", GrowthOpportunity.from_dict),
            generated_at=_generated_at(data),
        )

    @staticmethod
    def from_growth(manifest: GrowthManifest) -> "DocsManifest":
        return DocsManifest(
            project_name=manifest.project_name,
            tech_stack=manifest.tech_stack,
            description=manifest.description,
            industry=manifest.industry,
            current_growth_features=list(manifest.current_growth_features),
            growth_opportunities=list(manifest.growth_opportunities),
            generated_at=manifest.generated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _serialise(self)


def stamp_manifest(value: Any, docs: bool = False) -> Any:
    """Fill in ``version`` and ``generated_at`` on a freshly generated manifest.

    Values the model already supplied are kept.  Anything other than a JSON
    object is returned unchanged.
    """
    if not isinstance(value, dict):
        return value
    stamped = dict(value)
    if not stamped.get("version"):
        stamped["version"] = DOCS_MANIFEST_VERSION if docs else GROWTH_MANIFEST_VERSION
    if not stamped.get("generated_at"):
        stamped["generated_at"] = _now().isoformat()
    return stamped
