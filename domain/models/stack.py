# domain/models/stack.py
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Tuple

@dataclass(frozen=True)
class DetectionResult:
    """A single technology detected by the scanner"""
    name: str
    version: Optional[str] = None
    variant: Optional[str] = None
    confidence: float = 100.0
    evidence: Tuple[str, ...] = ()

@dataclass(frozen=True)
class StackTesting:
    unit: Optional[DetectionResult] = None
    e2e: Optional[DetectionResult] = None

@dataclass(frozen=True)
class McpStack:
    """Model Context Protocol facts reported by the scanner"""
    recommended: Tuple[str, ...] = ()
    is_project: bool = False

@dataclass(frozen=True)
class StackSummary:
    """Immutable facts about the detected technology stack"""
    framework: Optional[DetectionResult] = None
    package_manager: Optional[DetectionResult] = None
    testing: StackTesting = field(default_factory=StackTesting)
    styling: Optional[DetectionResult] = None
    database: Optional[DetectionResult] = None
    orm: Optional[DetectionResult] = None
    api: Tuple[DetectionResult, ...] = ()
    state_management: Optional[DetectionResult] = None
    auth: Optional[DetectionResult] = None
    analytics: Tuple[DetectionResult, ...] = ()
    payments: Optional[DetectionResult] = None
    email: Optional[DetectionResult] = None
    deployment: Tuple[DetectionResult, ...] = ()
    monorepo: Optional[DetectionResult] = None
    mcp: McpStack = field(default_factory=McpStack)

    def technology_names(self) -> List[str]:
        """Names of the headline technologies, in planning priority order"""
        names = []
        for detection in (
            self.framework,
            self.database,
            self.orm,
            self.testing.unit,
            self.testing.e2e,
            self.state_management,
            self.auth,
            self.styling,
        ):
            if detection is not None:
                names.append(detection.name)
        if self.mcp.is_project:
            names.append("MCP Server")
        return names

@dataclass(frozen=True)
class PackageManifest:
    """Subset of the project manifest (package.json) used for fallbacks"""
    name: Optional[str] = None
    main: Optional[str] = None
    module: Optional[str] = None
    bin: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageManifest":
        bin_field = data.get("bin") or {}
        if isinstance(bin_field, str):
            bin_field = {data.get("name") or "cli": bin_field}
        return cls(
            name=data.get("name"),
            main=data.get("main"),
            module=data.get("module"),
            bin={str(k): str(v) for k, v in bin_field.items()},
            scripts={str(k): str(v) for k, v in (data.get("scripts") or {}).items()},
        )

@dataclass(frozen=True)
class ScanResult:
    """Output of the scanner collaborator: where the project is and what it uses"""
    project_root: str
    stack: StackSummary
    manifest: Optional[PackageManifest] = None
    scan_time_ms: int = 0
    errors: Tuple[str, ...] = ()
