# tests/unit/shared/test_concurrency.py
import asyncio
import pytest

from shared.concurrency import settle_all

class TestSettleAll:
    """Test wait-for-everything execution"""

    @pytest.mark.asyncio
    async def test_failures_do_not_cancel_siblings(self):
        finished = []

        async def slow(name):
            await asyncio.sleep(0.02)
            finished.append(name)
            return name

        async def crash():
            raise ValueError("bad technology")

        outcomes = await settle_all([slow("Next.js"), crash(), slow("Vitest")])

        assert [o.ok for o in outcomes] == [True, False, True]
        assert outcomes[0].value == "Next.js"
        assert isinstance(outcomes[1].error, ValueError)
        assert sorted(finished) == ["Next.js", "Vitest"]

    @pytest.mark.asyncio
    async def test_results_keep_submission_order(self):
        async def delayed(value, delay):
            await asyncio.sleep(delay)
            return value

        outcomes = await settle_all([delayed("first", 0.03), delayed("second", 0.0)])

        assert [o.value for o in outcomes] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await settle_all([]) == []
