from pathlib import Path
from typing import Callable, Dict

from mediastamp.const import CONTAINER_EXTENSIONS, ContainerKind
from mediastamp.errors import DateNotFound, UnrecognizedContainerType
from mediastamp.resolvers.matroska import resolve_matroska
from mediastamp.resolvers.mp4 import resolve_mp4


def container_kind(path: Path) -> ContainerKind:
    """Classify a file by its lower-cased extension; the content is never inspected."""
    kind = CONTAINER_EXTENSIONS.get(path.suffix[1:].lower())
    if kind is None:
        raise UnrecognizedContainerType()
    return kind


class ResolverFactory:
    """Maps each container kind to its creation date resolver."""

    _resolvers: Dict[ContainerKind, Callable] = {
        ContainerKind.MATROSKA: resolve_matroska,
        ContainerKind.MP4: resolve_mp4,
    }

    @classmethod
    def get_resolver(cls, kind: ContainerKind) -> Callable:
        resolver = cls._resolvers.get(kind)
        if not resolver:
            raise UnrecognizedContainerType(f"unsupported container: {kind}")
        return resolver

    @classmethod
    def resolve_creation_date(cls, path: Path):
        """
        Resolve the creation date of a media file.

        Raises:
            UnrecognizedContainerType: extension not in the dispatch table.
            ContainerParseFailure: the file could not be read or parsed.
            DateNotFound: the container carries no usable creation date.
        """
        resolver = cls.get_resolver(container_kind(path))
        creation_date = resolver(path)
        if creation_date is None:
            raise DateNotFound()
        return creation_date
