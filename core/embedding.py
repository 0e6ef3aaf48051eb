"""Interface of the embedding library the engine drives.

The engine never draws anything itself: it hands a container and a visual
config to an :class:`EmbedService`, keeps the returned :class:`EmbedHandle`
and talks to it through ``on``/``set_filters``/``remove_filters``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from core.widgets import WidgetSpec


LOADED = "loaded"
RENDERED = "rendered"
ERROR = "error"
DATA_SELECTED = "dataSelected"

TOKEN_TYPE_EMBED = 1
PERMISSIONS_READ = 0


class EmbedHandle(Protocol):
    def on(self, event: str, callback: Callable[[Any], None]) -> None: ...

    async def set_filters(self, filters: List[Dict[str, Any]]) -> None: ...

    async def remove_filters(self) -> None: ...


class EmbedService(Protocol):
    def embed(self, container: Any, config: Dict[str, Any]) -> EmbedHandle: ...

    def reset(self, container: Any) -> None: ...


@dataclass(frozen=True)
class EmbedData:
    embed_url: str
    token: str
    report_id: str

    @classmethod
    def from_payload(cls, payload: Any) -> Optional[EmbedData]:
        if not isinstance(payload, Mapping):
            return None
        token = payload.get("token")
        embed_url = payload.get("embedUrl")
        report_id = payload.get("reportId")
        if not token or not embed_url or not report_id:
            return None
        return cls(embed_url=str(embed_url), token=str(token), report_id=str(report_id))


def visual_config(spec: WidgetSpec, embed_data: EmbedData) -> Dict[str, Any]:
    return {
        "type": "visual",
        "tokenType": TOKEN_TYPE_EMBED,
        "permissions": PERMISSIONS_READ,
        "embedUrl": embed_data.embed_url,
        "accessToken": embed_data.token,
        "id": embed_data.report_id,
        "pageName": spec.page_name,
        "visualName": spec.visual_name,
        "settings": {"filterPaneEnabled": False},
    }
