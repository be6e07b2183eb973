"""Catalog of protected resources and the actions they expose.

The catalog is declared outside the engine, either as a YAML document::

    resources:
      - name: app
        actions:
          - name: admin
          - name: login
      - name: blog
        actions: [view, publish]

or in the ``rights.xml`` layout::

    <rights>
      <section name="blog">
        <action name="view"/>
        <action name="publish"/>
      </section>
    </rights>
"""

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import yaml

from ...common.logger import get_logger
from .errors import CatalogLoadError

logger = get_logger("catalog")


@dataclass(frozen=True)
class Resource:
    """A protected area of the application and its ordered actions."""

    name: str
    actions: Tuple[str, ...] = field(default_factory=tuple)

    def has_action(self, action: str) -> bool:
        return action in self.actions


class ActionCatalogSource(ABC):
    """Abstract source of the action catalog."""

    @abstractmethod
    def list_resources(self) -> List[Dict[str, Any]]:
        """Return ``[{"name": str, "actions": [{"name": str} | str, ...]}, ...]``.

        Raises:
            CatalogLoadError: If the source cannot be read
        """

    def describe(self) -> str:
        return self.__class__.__name__


class StaticCatalogSource(ActionCatalogSource):
    """Catalog declared in code.

    Accepts either the list form returned by ``list_resources`` or a plain
    mapping of resource name to action names.
    """

    def __init__(self, resources: Union[Dict[str, Iterable[str]], List[Dict[str, Any]]]):
        if isinstance(resources, dict):
            resources = [
                {"name": name, "actions": list(actions)}
                for name, actions in resources.items()
            ]
        self._resources = resources

    def list_resources(self) -> List[Dict[str, Any]]:
        return list(self._resources)


class YamlCatalogSource(ActionCatalogSource):
    """Catalog read from a YAML document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def describe(self) -> str:
        return str(self.path)

    def list_resources(self) -> List[Dict[str, Any]]:
        try:
            with self.path.open("r") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise CatalogLoadError(
                f"Action catalog could not be read: {e}", source=str(self.path)
            ) from e
        except yaml.YAMLError as e:
            raise CatalogLoadError(
                f"Action catalog is not valid YAML: {e}", source=str(self.path)
            ) from e

        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("resources", [])
        if not isinstance(data, list):
            raise CatalogLoadError(
                "Action catalog must define a list of resources",
                source=str(self.path),
            )
        return data


class XmlCatalogSource(ActionCatalogSource):
    """Catalog read from a ``rights.xml`` document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def describe(self) -> str:
        return str(self.path)

    def list_resources(self) -> List[Dict[str, Any]]:
        try:
            tree = ET.parse(self.path)
        except OSError as e:
            raise CatalogLoadError(
                f"Action catalog could not be read: {e}", source=str(self.path)
            ) from e
        except ET.ParseError as e:
            raise CatalogLoadError(
                f"Action catalog is not valid XML: {e}", source=str(self.path)
            ) from e

        root = tree.getroot()
        if root.tag != "rights":
            raise CatalogLoadError(
                f"Expected <rights> root element, got <{root.tag}>",
                source=str(self.path),
            )

        resources = []
        for section in root.findall("section"):
            resources.append(
                {
                    "name": section.get("name"),
                    "actions": [
                        {"name": action.get("name")}
                        for action in section.findall("action")
                    ],
                }
            )
        return resources


def catalog_source_for_path(path: Union[str, Path]) -> ActionCatalogSource:
    """Pick a catalog source from the file suffix.

    Raises:
        CatalogLoadError: If the suffix is not supported
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return YamlCatalogSource(path)
    if suffix == ".xml":
        return XmlCatalogSource(path)
    raise CatalogLoadError(
        f"Unsupported action catalog format: {suffix or '(none)'}", source=str(path)
    )


def _action_name(entry: Any, resource: str, source: str) -> str:
    name = entry.get("name") if isinstance(entry, dict) else entry
    if not isinstance(name, str) or not name.strip():
        raise CatalogLoadError(
            f"Action in resource '{resource}' is missing a name", source=source
        )
    return name.strip()


class ResourceCatalog:
    """Ordered, read-only set of resources."""

    def __init__(self, resources: Iterable[Resource] = ()):
        self._resources: Dict[str, Resource] = {}
        for resource in resources:
            self._resources[resource.name] = resource

    @classmethod
    def load(cls, source: ActionCatalogSource) -> "ResourceCatalog":
        """Load the catalog from a source.

        Args:
            source: Action catalog source

        Returns:
            ResourceCatalog instance

        Raises:
            CatalogLoadError: If the source is unreadable or malformed
        """
        origin = source.describe()
        try:
            entries = source.list_resources()
        except CatalogLoadError:
            raise
        except Exception as e:
            raise CatalogLoadError(
                f"Action catalog source failed: {e}", source=origin
            ) from e

        resources: List[Resource] = []
        seen = set()
        for entry in entries:
            if not isinstance(entry, dict):
                raise CatalogLoadError(
                    "Catalog resource entries must be mappings", source=origin
                )
            name = entry.get("name")
            if not isinstance(name, str) or not name.strip():
                raise CatalogLoadError("Resource is missing a name", source=origin)
            name = name.strip()
            if name in seen:
                raise CatalogLoadError(f"Duplicate resource: {name}", source=origin)
            seen.add(name)

            raw_actions = entry.get("actions") or []
            if not isinstance(raw_actions, list):
                raise CatalogLoadError(
                    f"Actions of resource '{name}' must be a list", source=origin
                )
            actions: List[str] = []
            for raw in raw_actions:
                action = _action_name(raw, name, origin)
                if action not in actions:
                    actions.append(action)

            if not actions:
                logger.debug(f"Resource '{name}' declares no actions")
            resources.append(Resource(name=name, actions=tuple(actions)))

        logger.info(f"Loaded {len(resources)} resources from {origin}")
        return cls(resources)

    def get(self, name: str) -> Optional[Resource]:
        return self._resources.get(name)

    def actions_for(self, name: str) -> Tuple[str, ...]:
        resource = self._resources.get(name)
        return resource.actions if resource else ()

    def has_action(self, resource: str, action: str) -> bool:
        return action in self.actions_for(resource)

    @property
    def names(self) -> List[str]:
        return list(self._resources)

    def __contains__(self, name: str) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)
