# tests/unit/application/services/test_capability_resolver.py
import pytest

from domain.models.stack import DetectionResult, McpStack, StackSummary
from domain.models.agent_context import CapabilityRecommendations
from application.services.capability_resolver import (
    CapabilityResolver,
    CapabilityTables,
    to_recommendation_set,
)

class TestCapabilityResolver:
    """Test stack to integration server mapping"""

    def test_nextjs_supabase_stack(self, nextjs_scan):
        """Test a full web stack resolves database, framework, deployment and services"""
        capabilities = CapabilityResolver().resolve(nextjs_scan.stack)

        assert capabilities.e2e_testing == "playwright"
        assert capabilities.database == "supabase"
        assert capabilities.additional == ["vercel", "clerk"]

    def test_empty_stack_still_recommends_e2e(self, bare_scan):
        capabilities = CapabilityResolver().resolve(bare_scan.stack)

        assert capabilities.e2e_testing == "playwright"
        assert capabilities.database is None
        assert capabilities.additional == []

    @pytest.mark.parametrize("database, expected", [
        ("PostgreSQL 15", "postgres"),
        ("Neon", "postgres"),
        ("Turso", "sqlite"),
        ("Cloud Firestore", "firebase"),
        ("CouchDB", None),
    ])
    def test_database_partial_match(self, database, expected):
        stack = StackSummary(database=DetectionResult(name=database))

        assert CapabilityResolver().resolve(stack).database == expected

    def test_scanner_recommendations_skip_duplicates(self, mcp_scan):
        """Test scanner-recommended servers never repeat e2e or database"""
        stack = StackSummary(
            database=DetectionResult(name="Supabase"),
            mcp=McpStack(recommended=("supabase", "Playwright", "github"), is_project=True),
        )

        capabilities = CapabilityResolver().resolve(stack)

        assert capabilities.additional == ["github"]
        assert CapabilityResolver().resolve(mcp_scan.stack).additional == ["github"]

    def test_custom_tables(self):
        """Test lookup tables can be replaced"""
        tables = CapabilityTables(e2e_default="cypress", databases={"couchdb": "couchdb"})
        stack = StackSummary(database=DetectionResult(name="CouchDB"))

        capabilities = CapabilityResolver(tables).resolve(stack)

        assert capabilities.e2e_testing == "cypress"
        assert capabilities.database == "couchdb"

    def test_resolution_is_deterministic(self, nextjs_scan):
        resolver = CapabilityResolver()
        assert resolver.resolve(nextjs_scan.stack) == resolver.resolve(nextjs_scan.stack)

class TestRecommendationSet:
    """Test split between essential and recommended servers"""

    def test_essential_is_e2e_plus_database(self):
        capabilities = CapabilityRecommendations(
            e2e_testing="playwright",
            database="supabase",
            additional=["Vercel", "supabase", "github (for PRs)"],
        )

        recommendations = to_recommendation_set(capabilities)

        assert recommendations.essential == ["playwright", "supabase"]
        assert recommendations.recommended == ["vercel", "github"]

    def test_without_database(self):
        recommendations = to_recommendation_set(CapabilityRecommendations(e2e_testing="playwright"))

        assert recommendations.essential == ["playwright"]
        assert recommendations.recommended == []
