# ============================================================================
# STREAM ENDPOINT PROVISIONERS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Service - Destination URI adapters
# PURPOSE: Produce the one destination URI a job relays to
# CREATED: 19 OCT 2026
# ============================================================================
"""
Stream Endpoint Provisioners

A provisioner is asked once per job, before the job is admitted, for an
opaque destination URI. The orchestrator never parses it.

Provisioners register by name at import time:

    @register_provisioner("static")
    class StaticEndpointProvisioner(EndpointProvisioner):
        ...

Built-ins:
    static  - fixed RTMP URL from configuration
    youtube - create a liveStream + liveBroadcast, bind them, return
              <ingestionAddress>/<streamName>

The stream key is part of the destination URI and is never included in
the info dict echoed back to clients.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Type

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from core.config import ProvisionerDefaults
from core.errors import EndpointProvisionError, UnknownProvisionerError

logger = logging.getLogger(__name__)


YOUTUBE_SCOPES = ["https://www.googleapis.com/auth/youtube"]


def default_title() -> str:
    return f"Auto stream {datetime.now(timezone.utc).isoformat()}"


# ============================================================================
# CONTRACT
# ============================================================================

@dataclass
class ProvisionedEndpoint:
    """Destination handed to a job."""
    destination_uri: str
    external_id: Optional[str] = None
    info: Dict[str, Any] = field(default_factory=dict)


class EndpointProvisioner:
    """Base class for destination provisioners."""

    name: str = "base"

    def __init__(self, defaults: Optional[ProvisionerDefaults] = None):
        self.defaults = defaults or ProvisionerDefaults()

    async def provision(self, title: Optional[str] = None) -> ProvisionedEndpoint:
        raise NotImplementedError


# ============================================================================
# REGISTRY
# ============================================================================

class DuplicateProvisionerError(Exception):
    """Raised when a provisioner name is already registered."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Provisioner already registered: {name}")


_provisioners: Dict[str, Type[EndpointProvisioner]] = {}


def register_provisioner(name: str) -> Callable[[Type[EndpointProvisioner]], Type[EndpointProvisioner]]:
    """
    Class decorator registering a provisioner under a name.

    Raises:
        DuplicateProvisionerError if the name is taken
    """
    def decorator(cls: Type[EndpointProvisioner]) -> Type[EndpointProvisioner]:
        if name in _provisioners:
            raise DuplicateProvisionerError(name)
        cls.name = name
        _provisioners[name] = cls
        logger.debug(f"Registered provisioner: {name} ({cls.__module__}.{cls.__name__})")
        return cls

    return decorator


def list_provisioners() -> List[str]:
    return sorted(_provisioners)


def create_provisioner(
    name: str,
    defaults: Optional[ProvisionerDefaults] = None,
) -> EndpointProvisioner:
    """
    Instantiate a registered provisioner.

    Raises:
        UnknownProvisionerError if nothing is registered under name
    """
    cls = _provisioners.get(name)
    if cls is None:
        raise UnknownProvisionerError(name)
    return cls(defaults)


# ============================================================================
# STATIC
# ============================================================================

@register_provisioner("static")
class StaticEndpointProvisioner(EndpointProvisioner):
    """Always returns the configured RTMP URL."""

    async def provision(self, title: Optional[str] = None) -> ProvisionedEndpoint:
        url = self.defaults.static_rtmp_url
        if not url:
            raise EndpointProvisionError(
                self.name,
                "no destination configured (set RELAY_RTMP_URL)",
            )
        return ProvisionedEndpoint(
            destination_uri=url,
            info={"provisioner": self.name, "title": title or default_title()},
        )


# ============================================================================
# YOUTUBE
# ============================================================================

@register_provisioner("youtube")
class YouTubeEndpointProvisioner(EndpointProvisioner):
    """
    Create a YouTube live broadcast per job.

    Steps (YouTube Data API v3):
        1. liveStreams.insert     -> ingestion address + stream name
        2. liveBroadcasts.insert  -> scheduled broadcast
        3. liveBroadcasts.bind    -> attach the stream to the broadcast

    The API client is blocking, so each provision runs in a worker thread.
    Access-token refresh is handled by google-auth from the refresh token.
    """

    def __init__(
        self,
        defaults: Optional[ProvisionerDefaults] = None,
        service_factory: Optional[Callable[[], Any]] = None,
    ):
        super().__init__(defaults)
        self._service_factory = service_factory or self._build_service

    def _build_service(self) -> Any:
        d = self.defaults
        if not d.youtube_configured:
            raise EndpointProvisionError(
                self.name,
                "missing GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET or YOUTUBE_REFRESH_TOKEN",
            )
        credentials = Credentials(
            None,
            refresh_token=d.youtube_refresh_token,
            token_uri=d.token_uri,
            client_id=d.google_client_id,
            client_secret=d.google_client_secret,
            scopes=YOUTUBE_SCOPES,
        )
        return build("youtube", "v3", credentials=credentials, cache_discovery=False)

    async def provision(self, title: Optional[str] = None) -> ProvisionedEndpoint:
        title = title or default_title()
        try:
            return await asyncio.to_thread(self._provision_sync, title)
        except EndpointProvisionError:
            raise
        except HttpError as e:
            status = getattr(e.resp, "status", "?")
            raise EndpointProvisionError(self.name, f"YouTube API error (HTTP {status}): {e}") from e
        except GoogleAuthError as e:
            raise EndpointProvisionError(self.name, f"YouTube auth failed: {e}") from e
        except (OSError, httplib2.HttpLib2Error) as e:
            raise EndpointProvisionError(self.name, f"YouTube unreachable: {e}") from e

    def _provision_sync(self, title: str) -> ProvisionedEndpoint:
        d = self.defaults
        youtube = self._service_factory()

        stream = youtube.liveStreams().insert(
            part="snippet,cdn",
            body={
                "snippet": {"title": f"Stream for {title}"},
                "cdn": {
                    "format": d.ingestion_format,
                    "ingestionType": "rtmp",
                    "resolution": "variable",
                    "frameRate": "variable",
                },
            },
        ).execute()

        ingestion = (stream.get("cdn") or {}).get("ingestionInfo") or {}
        ingestion_address = ingestion.get("ingestionAddress") or d.fallback_ingestion_address
        stream_name = ingestion.get("streamName")
        if not stream_name:
            raise EndpointProvisionError(self.name, "liveStream has no stream name")

        now = datetime.now(timezone.utc)
        start = now + timedelta(seconds=d.scheduled_lead_seconds)
        end = now + timedelta(seconds=d.scheduled_duration_seconds)

        broadcast = youtube.liveBroadcasts().insert(
            part="snippet,status,contentDetails",
            body={
                "snippet": {
                    "title": title,
                    "scheduledStartTime": start.isoformat(),
                    "scheduledEndTime": end.isoformat(),
                },
                "status": {"privacyStatus": d.privacy_status},
            },
        ).execute()

        youtube.liveBroadcasts().bind(
            part="id,contentDetails",
            id=broadcast["id"],
            streamId=stream["id"],
        ).execute()

        logger.info(
            f"Provisioned YouTube broadcast {broadcast['id']} bound to stream {stream['id']}"
        )

        return ProvisionedEndpoint(
            destination_uri=f"{ingestion_address.rstrip('/')}/{stream_name}",
            external_id=broadcast["id"],
            info={
                "provisioner": self.name,
                "title": title,
                "broadcast_id": broadcast["id"],
                "stream_id": stream["id"],
                "rtmp_url": ingestion_address,
            },
        )


__all__ = [
    "ProvisionedEndpoint",
    "EndpointProvisioner",
    "DuplicateProvisionerError",
    "register_provisioner",
    "list_provisioners",
    "create_provisioner",
    "StaticEndpointProvisioner",
    "YouTubeEndpointProvisioner",
    "default_title",
]
