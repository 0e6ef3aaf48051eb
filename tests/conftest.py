from __future__ import annotations

from typing import Dict

import pytest

from core.config import DashboardSettings
from core.embedding import EmbedData
from core.filters import SharedFilterState
from core.registry import WidgetRegistry
from core.widgets import WidgetId, resolve_spec
from tests.fakes import STATIC_IDS, FakeHandle


@pytest.fixture
def settings() -> DashboardSettings:
    return DashboardSettings(
        api_base_url="http://layout.test/api",
        embed_token_url="http://layout.test/getEmbedToken",
        save_quiet_period_ms=50,
    )


@pytest.fixture
def embed_data() -> EmbedData:
    return EmbedData(embed_url="https://app.example.test/reportEmbed?reportId=r1", token="embed-token", report_id="r1")


@pytest.fixture
def state() -> SharedFilterState:
    return SharedFilterState()


@pytest.fixture
def registry() -> WidgetRegistry:
    return WidgetRegistry()


@pytest.fixture
def handles(registry: WidgetRegistry) -> Dict[WidgetId, FakeHandle]:
    out = {}
    for widget_id in STATIC_IDS:
        handle = FakeHandle(str(widget_id))
        registry.register(widget_id, handle)
        out[widget_id] = handle
    return out


@pytest.fixture
def lookup():
    return lambda widget_id: resolve_spec(widget_id, [])
