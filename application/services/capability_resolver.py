# application/services/capability_resolver.py
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, List

from domain.models.stack import StackSummary, DetectionResult
from domain.models.agent_context import CapabilityRecommendations, RecommendationSet
from domain.services.artifact_rules import normalize_recommendations

DEFAULT_E2E_CAPABILITY = "playwright"

DATABASE_CAPABILITIES: Mapping[str, str] = MappingProxyType({
    "supabase": "supabase",
    "convex": "convex",
    "postgres": "postgres",
    "postgresql": "postgres",
    "sqlite": "sqlite",
    "firebase": "firebase",
    "firestore": "firebase",
    "mongodb": "mongodb",
    "mysql": "mysql",
    "redis": "redis",
    "planetscale": "planetscale",
    "neon": "postgres",   # Postgres-compatible
    "turso": "sqlite",    # libSQL / SQLite-compatible
})

FRAMEWORK_CAPABILITIES: Mapping[str, Sequence[str]] = MappingProxyType({
    "next.js": ("vercel",),
    "nextjs": ("vercel",),
    "vercel": ("vercel",),
    "remix": (),
    "astro": (),
    "nuxt": (),
    "sveltekit": (),
})

DEPLOYMENT_CAPABILITIES: Mapping[str, str] = MappingProxyType({
    "docker": "docker",
    "vercel": "vercel",
    "railway": "railway",
})

SERVICE_CAPABILITIES: Mapping[str, str] = MappingProxyType({
    "stripe": "stripe",
    "clerk": "clerk",
    "auth0": "auth0",
    "github": "github",
    "gitlab": "gitlab",
    "aws": "aws",
    "gcp": "gcp",
    "azure": "azure",
    "docker": "docker",
    "kubernetes": "kubernetes",
    "k8s": "kubernetes",
    "posthog": "posthog",
    "sentry": "sentry",
    "resend": "resend",
    "sendgrid": "sendgrid",
    "twilio": "twilio",
})


@dataclass(frozen=True)
class CapabilityTables:
    """Lookup tables used by the resolver; swap them out in tests"""
    e2e_default: str = DEFAULT_E2E_CAPABILITY
    databases: Mapping[str, str] = field(default_factory=lambda: DATABASE_CAPABILITIES)
    frameworks: Mapping[str, Sequence[str]] = field(default_factory=lambda: FRAMEWORK_CAPABILITIES)
    deployments: Mapping[str, str] = field(default_factory=lambda: DEPLOYMENT_CAPABILITIES)
    services: Mapping[str, str] = field(default_factory=lambda: SERVICE_CAPABILITIES)


def _lookup(table: Mapping, name: str):
    """Partial, case-insensitive match; the longest matching key wins"""
    lowered = name.lower()
    for key in sorted(table, key=lambda k: (-len(k), k)):
        if key in lowered:
            return table[key]
    return None


class CapabilityResolver:
    """Pure mapping from a detected stack to recommended integration servers"""

    def __init__(self, tables: Optional[CapabilityTables] = None):
        self.tables = tables or CapabilityTables()

    def resolve(self, stack: StackSummary) -> CapabilityRecommendations:
        additional: List[str] = []

        def add(name: Optional[str]):
            if name and name not in additional:
                additional.append(name)

        database = None
        if stack.database is not None:
            database = _lookup(self.tables.databases, stack.database.name)

        if stack.framework is not None:
            for name in _lookup(self.tables.frameworks, stack.framework.name) or ():
                add(name)

        for deployment in stack.deployment:
            add(_lookup(self.tables.deployments, deployment.name))

        services: List[Optional[DetectionResult]] = [stack.auth, *stack.analytics, stack.payments]
        for detection in services:
            if detection is not None:
                add(_lookup(self.tables.services, detection.name))

        for recommended in stack.mcp.recommended:
            lowered = recommended.lower()
            if lowered != database and lowered != self.tables.e2e_default:
                add(recommended)

        return CapabilityRecommendations(
            e2e_testing=self.tables.e2e_default,
            database=database,
            additional=additional,
        )


def to_recommendation_set(capabilities: CapabilityRecommendations) -> RecommendationSet:
    """Essential = e2e tooling plus database; everything else is recommended"""
    essential = normalize_recommendations(
        [name for name in (capabilities.e2e_testing, capabilities.database) if name]
    )
    recommended = normalize_recommendations(capabilities.additional, exclude=essential)
    return RecommendationSet(essential=essential, recommended=recommended)
