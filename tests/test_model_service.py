"""
Tests for model listing and resolution.
"""

import pytest

from gatex.entities import ModelInfo
from gatex.services import ModelService, resolve_model

from conftest import MODELS, FakeCatalog


class FailingCatalog:
    def __init__(self, models):
        self.models = models
        self.fail = False

    async def list_models(self):
        if self.fail:
            raise ConnectionError("backend down")
        return list(self.models)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestResolveModel:
    def test_exact_id(self):
        assert resolve_model(MODELS, "m").id == "m"

    def test_exact_match_wins_over_earlier_substring(self):
        models = [
            ModelInfo(id="gpt-4o-mini", name="Mini", vendor="v", family="gpt-4o-mini"),
            ModelInfo(id="gpt-4o", name="Full", vendor="v", family="gpt-4o"),
        ]
        assert resolve_model(models, "gpt-4o").id == "gpt-4o"

    def test_substring_of_id(self):
        assert resolve_model(MODELS, "gpt-4o").id == "copilot-gpt-4o"

    def test_family(self):
        models = [ModelInfo(id="x1", name="X", vendor="v", family="fam")]
        assert resolve_model(models, "fam").id == "x1"

    def test_name_case_insensitive(self):
        assert resolve_model(MODELS, "claude sonnet").id == "claude-sonnet-4"

    def test_first_in_discovery_order_wins(self):
        models = [
            ModelInfo(id="alpha-llama", name="A", vendor="v", family="llama"),
            ModelInfo(id="beta-llama", name="B", vendor="v", family="llama"),
        ]
        assert resolve_model(models, "llama").id == "alpha-llama"

    def test_no_match(self):
        assert resolve_model(MODELS, "nonexistent") is None


class TestModelService:
    @pytest.mark.asyncio
    async def test_listing_cached_within_ttl(self):
        catalog = FakeCatalog()
        clock = FakeClock()
        service = ModelService(catalog, cache_ttl=30, clock=clock)

        await service.get_models()
        clock.now = 29
        await service.get_models()
        assert catalog.calls == 1

        clock.now = 31
        await service.get_models()
        assert catalog.calls == 2

    @pytest.mark.asyncio
    async def test_clear_cache_forces_refresh(self):
        catalog = FakeCatalog()
        service = ModelService(catalog, clock=FakeClock())

        await service.get_models()
        service.clear_cache()
        await service.get_models()

        assert catalog.calls == 2

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_last_listing(self):
        catalog = FailingCatalog(MODELS)
        clock = FakeClock()
        service = ModelService(catalog, cache_ttl=1, clock=clock)

        assert await service.get_model_count() == len(MODELS)

        catalog.fail = True
        clock.now = 10
        assert await service.get_models() == MODELS

    @pytest.mark.asyncio
    async def test_failure_without_listing_returns_empty(self):
        catalog = FailingCatalog(MODELS)
        catalog.fail = True
        service = ModelService(catalog, clock=FakeClock())

        assert await service.get_models() == []
        assert await service.get_model("m") is None

    @pytest.mark.asyncio
    async def test_get_model_resolves(self):
        service = ModelService(FakeCatalog(), clock=FakeClock())

        model = await service.get_model("gpt-4o")

        assert model.id == "copilot-gpt-4o"
