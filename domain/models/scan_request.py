# domain/models/scan_request.py
"""Wire format for scan results submitted over HTTP (camelCase, as the scanner emits them)"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.models.stack import (
    DetectionResult,
    McpStack,
    PackageManifest,
    ScanResult,
    StackSummary,
    StackTesting,
)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DetectionModel(_WireModel):
    name: str = Field(..., min_length=1)
    version: Optional[str] = None
    variant: Optional[str] = None
    confidence: float = Field(default=100.0, ge=0, le=100)
    evidence: List[str] = Field(default_factory=list)

    def to_domain(self) -> DetectionResult:
        return DetectionResult(
            name=self.name,
            version=self.version,
            variant=self.variant,
            confidence=self.confidence,
            evidence=tuple(self.evidence),
        )


class StackTestingModel(_WireModel):
    unit: Optional[DetectionModel] = None
    e2e: Optional[DetectionModel] = None


class McpModel(_WireModel):
    recommended: List[str] = Field(default_factory=list)
    is_project: bool = False


class StackModel(_WireModel):
    framework: Optional[DetectionModel] = None
    package_manager: Optional[DetectionModel] = None
    testing: StackTestingModel = Field(default_factory=StackTestingModel)
    styling: Optional[DetectionModel] = None
    database: Optional[DetectionModel] = None
    orm: Optional[DetectionModel] = None
    api: List[DetectionModel] = Field(default_factory=list)
    state_management: Optional[DetectionModel] = None
    auth: Optional[DetectionModel] = None
    analytics: List[DetectionModel] = Field(default_factory=list)
    payments: Optional[DetectionModel] = None
    email: Optional[DetectionModel] = None
    deployment: List[DetectionModel] = Field(default_factory=list)
    monorepo: Optional[DetectionModel] = None
    mcp: McpModel = Field(default_factory=McpModel)

    def to_domain(self) -> StackSummary:
        def one(model: Optional[DetectionModel]) -> Optional[DetectionResult]:
            return model.to_domain() if model else None

        return StackSummary(
            framework=one(self.framework),
            package_manager=one(self.package_manager),
            testing=StackTesting(unit=one(self.testing.unit), e2e=one(self.testing.e2e)),
            styling=one(self.styling),
            database=one(self.database),
            orm=one(self.orm),
            api=tuple(m.to_domain() for m in self.api),
            state_management=one(self.state_management),
            auth=one(self.auth),
            analytics=tuple(m.to_domain() for m in self.analytics),
            payments=one(self.payments),
            email=one(self.email),
            deployment=tuple(m.to_domain() for m in self.deployment),
            monorepo=one(self.monorepo),
            mcp=McpStack(recommended=tuple(self.mcp.recommended), is_project=self.mcp.is_project),
        )


class ScanResultModel(_WireModel):
    project_root: str = Field(..., min_length=1)
    stack: StackModel = Field(default_factory=StackModel)
    manifest: Optional[Dict] = Field(default=None, description="Raw package.json contents")
    scan_time: int = Field(default=0, ge=0)
    errors: List[str] = Field(default_factory=list)

    def to_domain(self) -> ScanResult:
        return ScanResult(
            project_root=self.project_root,
            stack=self.stack.to_domain(),
            manifest=PackageManifest.from_dict(self.manifest) if self.manifest else None,
            scan_time_ms=self.scan_time,
            errors=tuple(self.errors),
        )
