"""Abstract base class for place search transports."""

from abc import ABC, abstractmethod

from magnifico.core.schemas import Candidate, PlaceQuery


class PlacesTransport(ABC):
    """Base class that every search provider transport must implement.

    Implementations normalize provider payloads into Candidate records and
    raise Misconfigured or UpstreamUnavailable. They do not retry.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'google')."""

    @abstractmethod
    async def search(self, query: PlaceQuery) -> list[Candidate]:
        """Run a search and return raw (unscored, possibly repeated) candidates."""
