"""Entity index: maps block/action/field identities to source ranges."""

from __future__ import annotations

from collections import defaultdict

from polyscope.models.document import DocumentSnapshot, Range
from polyscope.models.scope import EntityKind, EntityReference, LineSpan, ScopeFrame, ScopeKind
from polyscope.parser.scope import IDENTITY_KEY, LineEntry, ScopeScan, clean_scalar, scan

ACTION_SECTIONS = frozenset({"actions"})


def field_identity(entity: str | None, field: str) -> str:
    """Composite key of *field* inside *entity* (top-level when ``None``)."""
    return f"{entity}.{field}" if entity else field


class EntityIndex:
    """Identity → references lookup for one document revision.

    Duplicate identities are legal in the source and are all retained in
    document order.  Field lookups are scoped to the owning entity's span so a
    same-named field of an unrelated entity can never match.
    """

    def __init__(self, document: DocumentSnapshot, references: list[EntityReference]) -> None:
        self._document = document
        self._references = references
        self._by_identity: dict[str, list[EntityReference]] = defaultdict(list)
        for ref in references:
            self._by_identity[ref.identity].append(ref)

    # -- construction --------------------------------------------------------

    @classmethod
    def build(cls, document: DocumentSnapshot, scope_scan: ScopeScan | None = None) -> EntityIndex:
        """Index *document* using one scope scan (computed if not supplied)."""
        if scope_scan is None:
            scope_scan = scan(document)
        references: list[EntityReference] = []
        # start_line of an open entity frame -> its identity
        identities: dict[int, str] = {}

        for entry in scope_scan.entries:
            if entry is None:
                continue
            stack = scope_scan.stack_at(entry.number)
            top = stack[-1]
            if top.kind == ScopeKind.BLOCK_SEQUENCE_ITEM and top.start_line == entry.number:
                entity = cls._entity_reference(document, scope_scan, stack, identities, entry)
                if entity is not None:
                    identities[top.start_line] = entity.identity
                    references.append(entity)
                    references.append(
                        cls._field_reference(document, entry, entity.identity, entity.span)
                    )
                continue

            owner = cls._field_owner(stack, entry)
            if owner is None or entry.key is None:
                continue
            if owner.kind == ScopeKind.ROOT:
                references.append(cls._field_reference(document, entry, None, None))
            elif owner.start_line in identities:
                owner_identity = identities[owner.start_line]
                span = LineSpan(owner.start_line, scope_scan.end_of(owner))
                references.append(cls._field_reference(document, entry, owner_identity, span))

        return cls(document, references)

    @staticmethod
    def _field_owner(stack: tuple[ScopeFrame, ...], entry: LineEntry) -> ScopeFrame | None:
        """The frame *entry* is a direct field of, if any.

        A line opening its own frame (``config:``) is still a field of the
        frame below it.
        """
        if entry.is_item:
            return None
        frames = stack[:-1] if stack[-1].start_line == entry.number and len(stack) > 1 else stack
        parent = frames[-1]
        if parent.kind == ScopeKind.ROOT:
            return parent if entry.indent == 0 else None
        if parent.kind == ScopeKind.BLOCK_SEQUENCE_ITEM and entry.indent == parent.field_column:
            return parent
        return None

    @staticmethod
    def _entity_reference(
        document: DocumentSnapshot,
        scope_scan: ScopeScan,
        stack: tuple[ScopeFrame, ...],
        identities: dict[int, str],
        entry: LineEntry,
    ) -> EntityReference | None:
        frame = stack[-1]
        if not frame.name:
            return None
        parent: str | None = None
        for enclosing in reversed(stack[:-1]):
            if enclosing.kind == ScopeKind.BLOCK_SEQUENCE_ITEM:
                parent = identities.get(enclosing.start_line)
                break
        kind = EntityKind.ACTION if frame.section in ACTION_SECTIONS else EntityKind.BLOCK
        identity = f"{parent}.{frame.name}" if parent else frame.name
        text = document.line(entry.number)
        start = entry.indent
        return EntityReference(
            entity_kind=kind,
            identity=identity,
            name=frame.name,
            range=Range.span(entry.number, start, len(text.rstrip())),
            span=LineSpan(frame.start_line, scope_scan.end_of(frame)),
            value=frame.name,
            parent=parent,
        )

    @staticmethod
    def _field_reference(
        document: DocumentSnapshot,
        entry: LineEntry,
        owner: str | None,
        span: LineSpan | None,
    ) -> EntityReference:
        key = entry.key or IDENTITY_KEY
        text = document.line(entry.number)
        return EntityReference(
            entity_kind=EntityKind.FIELD,
            identity=field_identity(owner, key),
            name=key,
            range=Range.span(entry.number, entry.key_column, len(text.rstrip())),
            span=span or LineSpan(entry.number, entry.number),
            value=clean_scalar(entry.value),
            parent=owner,
        )

    # -- queries -------------------------------------------------------------

    @property
    def document(self) -> DocumentSnapshot:
        return self._document

    def references(self, kind: EntityKind | None = None) -> list[EntityReference]:
        """All references in document order, optionally of one kind."""
        if kind is None:
            return list(self._references)
        return [ref for ref in self._references if ref.entity_kind == kind]

    def resolve_all(self, identity: str, kind: EntityKind | None = None) -> list[EntityReference]:
        refs = self._by_identity.get(identity, [])
        if kind is None:
            return list(refs)
        return [ref for ref in refs if ref.entity_kind == kind]

    def resolve(
        self, identity: str, kind: EntityKind | None = None, occurrence: int = 0
    ) -> EntityReference | None:
        """Reference for *identity*: the first one unless *occurrence* says otherwise.

        Without a *kind*, entities are preferred over fields sharing the
        same identity.
        """
        refs = self.resolve_all(identity, kind)
        if kind is None:
            entities = [ref for ref in refs if ref.entity_kind != EntityKind.FIELD]
            refs = entities or refs
        if 0 <= occurrence < len(refs):
            return refs[occurrence]
        return None

    def top_level_field(self, name: str) -> EntityReference | None:
        for ref in self.resolve_all(name, EntityKind.FIELD):
            if ref.parent is None:
                return ref
        return None

    def fields_of(self, entity: EntityReference) -> list[EntityReference]:
        """Direct fields recorded inside *entity*'s span."""
        return [
            ref
            for ref in self._references
            if ref.entity_kind == EntityKind.FIELD
            and ref.parent == entity.identity
            and ref.line in entity.span
        ]

    def find_field(
        self, entity_identity: str | None, field_name: str, occurrence: int = 0
    ) -> EntityReference | None:
        """Field reference strictly inside the entity's span, or ``None``."""
        if entity_identity is None:
            return self.top_level_field(field_name)
        entity = self.resolve(entity_identity, occurrence=occurrence)
        if entity is None or entity.entity_kind == EntityKind.FIELD:
            return None
        for ref in self.resolve_all(field_identity(entity_identity, field_name), EntityKind.FIELD):
            if ref.line in entity.span:
                return ref
        return None

    def resolve_field(
        self, entity_identity: str | None, field_name: str, occurrence: int = 0
    ) -> Range:
        """Range of a field, falling back to its entity, then to document start."""
        ref = self.find_field(entity_identity, field_name, occurrence)
        if ref is not None:
            return ref.range
        if entity_identity is not None:
            entity = self.resolve(entity_identity, occurrence=occurrence)
            if entity is not None:
                return entity.range
        return Range.zero()

    def locate_precise(
        self,
        identity: str | None,
        field: str | None = None,
        occurrence: int = 0,
        parent: str | None = None,
        line: int | None = None,
    ) -> Range | None:
        """Best source range for a subject, or ``None`` when nothing matches.

        Tries the field inside the subject, the subject itself, the parent
        subject and finally an explicit line.
        """
        if field is not None:
            ref = self.find_field(identity, field, occurrence)
            if ref is not None:
                return ref.range
        if identity is not None:
            entity = self.resolve(identity, occurrence=occurrence)
            if entity is not None:
                return entity.range
        if parent is not None:
            entity = self.resolve(parent)
            if entity is not None:
                return entity.range
        if line is not None and 0 <= line < len(self._document.lines):
            return self._document.line_range(line)
        return None

    def locate(
        self,
        identity: str | None,
        field: str | None = None,
        occurrence: int = 0,
        parent: str | None = None,
        line: int | None = None,
    ) -> Range:
        """Like :meth:`locate_precise` but never fails: document start last."""
        found = self.locate_precise(identity, field, occurrence, parent, line)
        return found if found is not None else Range.zero()
