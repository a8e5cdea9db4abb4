"""Static and templated MCP resources.

Resources are tenant-independent: they never touch the request context.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Optional
from urllib.parse import unquote

from mcp import types
from mcp.server.fastmcp.resources import ResourceTemplate

from vaultgate_api.errors import DomainError

WELCOME_TEXT = "Welcome to the Skyflow Streamable MCP Server. Don't DIY PII."


@dataclass(frozen=True)
class StaticResource:
    uri: str
    name: str
    title: str
    description: str
    read: Callable[[], str]
    mime_type: str = "text/plain"


@dataclass(frozen=True)
class TemplateResource:
    uri_template: str
    name: str
    title: str
    description: str
    read: Callable[..., str]
    mime_type: str = "text/plain"

    @cached_property
    def _sdk_template(self) -> ResourceTemplate:
        return ResourceTemplate.from_function(
            self.read,
            self.uri_template,
            name=self.name,
            description=self.description,
            mime_type=self.mime_type,
        )

    def match(self, uri: str) -> Optional[dict[str, str]]:
        """Return template variables if uri matches, else None.

        Each variable matches one path segment.
        """
        variables = self._sdk_template.matches(uri)
        if variables is None:
            return None
        return {key: unquote(value) for key, value in variables.items()}


class ResourceRegistry:
    """Registry of resources, read-only once frozen."""

    def __init__(self) -> None:
        self._static: dict[str, StaticResource] = {}
        self._templates: list[TemplateResource] = []
        self._frozen = False

    def freeze(self) -> None:
        self._frozen = True

    def _check_writable(self, name: str) -> None:
        if self._frozen:
            raise RuntimeError(f"Registry is frozen; cannot register resource {name!r}")

    def add_static(self, resource: StaticResource) -> None:
        self._check_writable(resource.name)
        if resource.uri in self._static:
            raise ValueError(f"Resource already registered: {resource.uri!r}")
        self._static[resource.uri] = resource

    def add_template(self, resource: TemplateResource) -> None:
        self._check_writable(resource.name)
        self._templates.append(resource)

    def list_resources(self) -> list[types.Resource]:
        return [
            types.Resource(
                uri=resource.uri,
                name=resource.name,
                title=resource.title,
                description=resource.description,
                mimeType=resource.mime_type,
            )
            for resource in self._static.values()
        ]

    def list_templates(self) -> list[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=resource.uri_template,
                name=resource.name,
                title=resource.title,
                description=resource.description,
                mimeType=resource.mime_type,
            )
            for resource in self._templates
        ]

    def read(self, uri: str) -> types.ReadResourceResult:
        """Read a resource by URI.

        Raises:
            DomainError: If no static resource or template matches uri
        """
        static = self._static.get(uri)
        if static is not None:
            return _text_result(uri, static.read(), static.mime_type)

        for template in self._templates:
            variables = template.match(uri)
            if variables is not None:
                return _text_result(uri, template.read(**variables), template.mime_type)

        raise DomainError(f"Resource not found: {uri}", details={"uri": uri})


def _text_result(uri: str, text: str, mime_type: str) -> types.ReadResourceResult:
    return types.ReadResourceResult(
        contents=[types.TextResourceContents(uri=uri, text=text, mimeType=mime_type)]
    )


def register_default_resources(registry: ResourceRegistry) -> None:
    """Register the welcome message and greeting template."""
    registry.add_static(
        StaticResource(
            uri="welcome://message",
            name="welcome",
            title="Welcome to Skyflow",
            description="A static welcome message",
            read=lambda: WELCOME_TEXT,
        )
    )
    registry.add_template(
        TemplateResource(
            uri_template="greeting://{name}",
            name="greeting",
            title="Greeting Resource",
            description="Dynamic greeting generator",
            read=lambda name: f"Hello, {name}!",
        )
    )
