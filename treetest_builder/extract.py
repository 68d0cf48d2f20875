from __future__ import annotations

from dataclasses import dataclass

from .backends.base import ROLE_HELPER, ROLE_TEST, Backend
from .source import Item, SourceDocument, parse_source


@dataclass(frozen=True)
class Unit:
    name: str
    role: str
    markers: frozenset[str]
    expect_failure: bool


@dataclass(frozen=True)
class ExtractedFacts:
    container_present: bool
    units: tuple[Unit, ...] = ()

    @property
    def test_ids(self) -> tuple[str, ...]:
        return tuple(u.name for u in self.units if u.role == ROLE_TEST)

    @property
    def helper_ids(self) -> tuple[str, ...]:
        return tuple(u.name for u in self.units if u.role == ROLE_HELPER)

    def test(self, name: str) -> Unit | None:
        for unit in self.units:
            if unit.role == ROLE_TEST and unit.name == name:
                return unit
        return None

    def tests_named(self, name: str) -> tuple[Unit, ...]:
        return tuple(u for u in self.units if u.role == ROLE_TEST and u.name == name)


def _unit(item: Item, backend: Backend, in_container: bool) -> Unit | None:
    role = backend.role(item, in_container)
    if role is None or not item.name:
        return None
    marked = role == ROLE_TEST and backend.has_failure_marker(item)
    return Unit(name=item.name, role=role, markers=backend.markers(item), expect_failure=marked)


def extract_document(doc: SourceDocument, backend: Backend) -> ExtractedFacts:
    if backend.container_is_file:
        container = None
    else:
        container = backend.find_container(doc.root)
        if container is None:
            return ExtractedFacts(container_present=False)

    units: list[Unit] = []
    for item in doc.root.items:
        if container is not None and item is container:
            scope = container.block.items if container.block is not None else ()
            for inner in scope:
                unit = _unit(inner, backend, True)
                if unit is not None:
                    units.append(unit)
            continue
        unit = _unit(item, backend, backend.container_is_file)
        if unit is not None:
            units.append(unit)
    return ExtractedFacts(container_present=True, units=tuple(units))


def extract(text: str, backend: Backend) -> tuple[SourceDocument, ExtractedFacts]:
    doc = parse_source(text, backend.syntax)
    return doc, extract_document(doc, backend)
