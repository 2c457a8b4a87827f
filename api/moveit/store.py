import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .errors import ConflictingWrite, IncompleteForm, InvalidSection, InvalidSlot, NotAuthorized, NotFound
from .forms import (
    COMPLETED,
    FORMS,
    IN_PROGRESS,
    SIGNATURE_SLOTS,
    SIGNED,
    FormType,
    ValidationResult,
    advance_on_section_save,
    complete_if_valid,
    completion_percentage,
    reopen_on_edit,
    section_summary,
    sign_if_slots_filled,
    signature_column,
    validate_values,
)
from .models import DisclosureShare, FSBOChecklist, Property, SellerDisclosure
from .prefill import checklist_prefill, disclosure_prefill
from .schemas import Actor
from .utils import new_id

logger = logging.getLogger(__name__)

MODELS = {FormType.DISCLOSURE: SellerDisclosure, FormType.CHECKLIST: FSBOChecklist}
WRITE_ATTEMPTS = 2
SIGNABLE_SHARE_STATES = ("viewed", "acknowledged")


def _require_owner_or_admin(actor: Actor, owner_id: str):
    if actor.is_admin or (actor.user_id and actor.user_id == owner_id):
        return
    raise NotAuthorized("only the owning seller or an administrator may access this document")


def _require_owner(doc, actor: Actor):
    if not actor.user_id or actor.user_id != doc.seller_id:
        raise NotAuthorized("only the owning seller may change this document")


def _refuse_if_signed(doc):
    if doc.status == SIGNED:
        raise NotAuthorized("a signed document must be reopened before it can be edited")


class PartialFormStore:
    """Owns every read-modify-write of disclosure and checklist rows.

    Writes reload the row under FOR UPDATE, recompute completion from the
    sections about to be persisted and commit through an UPDATE guarded by the
    row version. A lost race is retried once from fresh state before surfacing
    ConflictingWrite, so the stored percentage always matches the stored
    sections.
    """

    def __init__(self, session: Session):
        self.session = session

    # ---------- reads ----------

    def get(self, form_type: FormType, document_id: str, actor: Optional[Actor] = None):
        doc = self.session.get(MODELS[form_type], document_id)
        if not doc:
            raise NotFound(f"{form_type.value} {document_id} not found")
        if actor is not None:
            _require_owner_or_admin(actor, doc.seller_id)
        return doc

    def list_documents(self, form_type: FormType, owner_id: str, actor: Actor) -> List:
        _require_owner_or_admin(actor, owner_id)
        model = MODELS[form_type]
        return self.session.exec(
            select(model).where(model.seller_id == owner_id).order_by(model.updated_at.desc())
        ).all()

    def validate(self, form_type: FormType, document_id: str, actor: Optional[Actor] = None) -> ValidationResult:
        definition = FORMS[form_type]
        doc = self.get(form_type, document_id, actor)
        return validate_values(definition, definition.values_of(doc))

    def summary(self, form_type: FormType, doc) -> dict:
        definition = FORMS[form_type]
        return section_summary(definition, definition.values_of(doc))

    # ---------- get-or-create ----------

    def _find(self, form_type: FormType, property_id: Optional[str], owner_id: str):
        model = MODELS[form_type]
        stmt = select(model).where(model.seller_id == owner_id)
        if form_type is FormType.DISCLOSURE:
            stmt = stmt.where(model.property_id == property_id)
        else:
            stmt = stmt.where(model.property_key == (property_id or ""))
        return self.session.exec(stmt).first()

    def get_or_create(
        self, form_type: FormType, property_id: Optional[str], owner_id: str, actor: Actor
    ) -> Tuple[object, bool]:
        _require_owner_or_admin(actor, owner_id)
        if property_id:
            prop = self.session.get(Property, property_id)
            if not prop:
                raise NotFound(f"property {property_id} not found")
            if prop.seller_id != owner_id:
                raise NotAuthorized("property belongs to another seller")
        elif form_type is FormType.DISCLOSURE:
            raise NotFound("a disclosure must belong to a property")

        existing = self._find(form_type, property_id, owner_id)
        if existing:
            return existing, False

        definition = FORMS[form_type]
        doc = MODELS[form_type](
            property_id=property_id,
            seller_id=owner_id,
            status=definition.empty_status,
        )
        if form_type is FormType.CHECKLIST:
            doc.property_key = property_id or ""
        self.session.add(doc)
        try:
            self.session.commit()
        except IntegrityError:
            # another request inserted the same key first; its row is the answer
            self.session.rollback()
            existing = self._find(form_type, property_id, owner_id)
            if existing is None:
                raise
            logger.debug("create race lost for %s property=%s seller=%s", form_type.value, property_id, owner_id)
            return existing, False
        self.session.refresh(doc)
        logger.info("created %s %s property=%s seller=%s", form_type.value, doc.id, property_id, owner_id)
        return doc, True

    # ---------- writes ----------

    def _load_for_update(self, model, document_id: str):
        doc = self.session.exec(
            select(model)
            .where(model.id == document_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if not doc:
            raise NotFound(f"{model.__tablename__} {document_id} not found")
        return doc

    def _write(
        self,
        form_type: FormType,
        document_id: str,
        actor: Actor,
        apply: Callable,
        authorize: Optional[Callable] = None,
        edits_sections: bool = False,
    ):
        """Run one guarded read-modify-write.

        ``apply(doc, values)`` mutates ``values`` (a copy of the persisted
        sections) in place and returns extra column changes, or None for a
        no-op. Status, percentage, version and updated_at are derived here.
        """
        model = MODELS[form_type]
        definition = FORMS[form_type]
        authorize = authorize or _require_owner
        for attempt in range(1, WRITE_ATTEMPTS + 1):
            try:
                doc = self._load_for_update(model, document_id)
                authorize(doc, actor)
                if edits_sections:
                    _refuse_if_signed(doc)
                before = definition.values_of(doc)
                values = dict(before)
                changes = apply(doc, values)
                if changes is None:
                    self.session.commit()
                    return doc
                changed = {k: v for k, v in values.items() if v != before[k]}
                status = changes.get("status", doc.status)
                if edits_sections:
                    reopened = reopen_on_edit(status, bool(changed))
                    if reopened != status and form_type is FormType.DISCLOSURE:
                        changes.update(self._clear_signatures(document_id))
                    status = advance_on_section_save(definition, reopened, values)
                changes.update(changed)
                changes["status"] = status
                changes["completion_percentage"] = completion_percentage(definition, values)
                changes["version"] = doc.version + 1
                changes["updated_at"] = datetime.utcnow()
                result = self.session.exec(
                    update(model)
                    .where(model.id == document_id, model.version == doc.version)
                    .values(**changes)
                    .execution_options(synchronize_session=False)
                )
            except Exception:
                self.session.rollback()
                raise
            if result.rowcount == 1:
                self.session.commit()
                self.session.refresh(doc)
                return doc
            self.session.rollback()
            logger.warning(
                "version conflict writing %s %s (attempt %d of %d)",
                form_type.value, document_id, attempt, WRITE_ATTEMPTS,
            )
        raise ConflictingWrite(
            f"{form_type.value} {document_id} was modified concurrently, retry the request",
            {"document_id": document_id},
        )

    def auto_save_section(self, form_type: FormType, document_id: str, section_key: str, section_value, actor: Actor):
        definition = FORMS[form_type]

        def apply(doc, values):
            values[section_key] = definition.clean_section(section_key, section_value)
            return {"last_auto_save": datetime.utcnow()}

        doc = self._write(form_type, document_id, actor, apply, edits_sections=True)
        logger.debug("auto-saved %s.%s on %s -> %d%%", form_type.value, section_key, document_id, doc.completion_percentage)
        return doc, doc.completion_percentage

    def update_document(self, form_type: FormType, document_id: str, patch: dict, actor: Actor):
        definition = FORMS[form_type]

        def apply(doc, values):
            unknown = [key for key in patch if key not in values]
            if unknown:
                raise InvalidSection(
                    f"unknown sections for {form_type.value}: {', '.join(unknown)}",
                    {"sections": unknown, "allowed": definition.section_keys},
                )
            for key, value in patch.items():
                values[key] = definition.clean_section(key, value)
            return {}

        return self._write(form_type, document_id, actor, apply, edits_sections=True)

    def prefill_from_property(self, form_type: FormType, document_id: str, actor: Actor):
        definition = FORMS[form_type]
        build = disclosure_prefill if form_type is FormType.DISCLOSURE else checklist_prefill

        def apply(doc, values):
            prop = self.session.get(Property, doc.property_id) if doc.property_id else None
            if not prop:
                raise NotFound("document is not linked to a known property")
            for key, value in build(prop, values).items():
                values[key] = definition.clean_section(key, value)
            return {}

        return self._write(form_type, document_id, actor, apply, edits_sections=True)

    def complete_document(self, form_type: FormType, document_id: str, actor: Actor):
        definition = FORMS[form_type]

        def apply(doc, values):
            if doc.status in (COMPLETED, SIGNED):
                return None
            return {"status": complete_if_valid(doc.status, validate_values(definition, values))}

        doc = self._write(form_type, document_id, actor, apply)
        logger.info("%s %s is %s", form_type.value, document_id, doc.status)
        return doc

    def reopen_document(self, form_type: FormType, document_id: str, actor: Actor):
        """Send a completed or signed document back to in_progress; sections are kept, signatures are not."""

        def apply(doc, values):
            if doc.status not in (COMPLETED, SIGNED):
                return None
            changes = {"status": IN_PROGRESS}
            if form_type is FormType.DISCLOSURE:
                changes.update(self._clear_signatures(doc.id))
            return changes

        doc = self._write(form_type, document_id, actor, apply)
        logger.info("%s %s reopened", form_type.value, document_id)
        return doc

    def _clear_signatures(self, disclosure_id: str) -> dict:
        """Drop every signature slot; buyers whose signature is dropped may sign again."""
        self.session.exec(
            update(DisclosureShare)
            .where(DisclosureShare.disclosure_id == disclosure_id, DisclosureShare.status == "signed")
            .values(status="viewed", signed_at=None, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return {signature_column(slot): None for slot in SIGNATURE_SLOTS}

    def _signable_share(self, disclosure_id: str, actor: Actor) -> Optional[DisclosureShare]:
        recipient = []
        if actor.user_id:
            recipient.append(DisclosureShare.recipient_user_id == actor.user_id)
        if actor.email:
            recipient.append(DisclosureShare.recipient_email == actor.email.lower())
        if not recipient:
            return None
        shares = self.session.exec(
            select(DisclosureShare).where(
                DisclosureShare.disclosure_id == disclosure_id,
                DisclosureShare.status.in_(SIGNABLE_SHARE_STATES),
                or_(*recipient),
            )
        ).all()
        now = datetime.utcnow()
        for share in shares:
            if share.expires_at is None or share.expires_at > now:
                return share
        return None

    def attach_signature(self, document_id: str, slot: str, signature: dict, actor: Actor):
        if slot not in SIGNATURE_SLOTS:
            raise InvalidSlot(f"unknown signature slot {slot!r}", {"allowed": sorted(SIGNATURE_SLOTS)})
        column = signature_column(slot)
        slot_role = SIGNATURE_SLOTS[slot]
        found = {}

        def authorize(doc, actor):
            if actor.role != slot_role:
                raise NotAuthorized(f"slot {slot} must be signed by a {slot_role}")
            if slot_role == "seller":
                _require_owner(doc, actor)
                return
            share = self._signable_share(doc.id, actor)
            if share is None:
                raise NotAuthorized("buyer signatures require a viewed or acknowledged share of this disclosure")
            found["share"] = share

        def apply(doc, values):
            if getattr(doc, column):
                raise InvalidSlot(f"slot {slot} is already signed", {"slot": slot})
            if doc.status not in (COMPLETED, SIGNED):
                result = validate_values(FORMS[FormType.DISCLOSURE], values)
                raise IncompleteForm(
                    "the disclosure must be completed before it is signed",
                    missing_sections=result.missing_sections,
                    errors=result.errors,
                )
            now = datetime.utcnow()
            blob = dict(signature, date=now.isoformat(), user_id=actor.user_id)
            signatures = {s: getattr(doc, signature_column(s)) for s in SIGNATURE_SLOTS}
            signatures[slot] = blob
            share = found.get("share")
            if share is not None:
                share.status = "signed"
                share.signed_at = now
                share.updated_at = now
                self.session.add(share)
            return {column: blob, "status": sign_if_slots_filled(doc.status, signatures)}

        doc = self._write(FormType.DISCLOSURE, document_id, actor, apply, authorize=authorize)
        logger.info("disclosure %s signed in slot %s by %s", document_id, slot, actor.user_id)
        return doc

    def add_attachment(self, document_id: str, attachment: dict, actor: Actor):
        entry = dict(
            attachment,
            id=f"att_{new_id()}",
            uploaded_at=datetime.utcnow().isoformat(),
            uploaded_by=actor.user_id,
        )

        def apply(doc, values):
            _refuse_if_signed(doc)
            return {"attachments": list(doc.attachments or []) + [entry]}

        doc = self._write(FormType.DISCLOSURE, document_id, actor, apply)
        return doc, entry

    def remove_attachment(self, document_id: str, attachment_id: str, actor: Actor):
        def apply(doc, values):
            _refuse_if_signed(doc)
            current = list(doc.attachments or [])
            remaining = [a for a in current if a.get("id") != attachment_id]
            if len(remaining) == len(current):
                raise NotFound(f"attachment {attachment_id} not found")
            return {"attachments": remaining}

        return self._write(FormType.DISCLOSURE, document_id, actor, apply)

    def delete_document(self, form_type: FormType, document_id: str, actor: Actor):
        if form_type is not FormType.CHECKLIST:
            raise NotAuthorized("disclosures cannot be deleted")
        doc = self.get(form_type, document_id)
        _require_owner(doc, actor)
        self.session.delete(doc)
        self.session.commit()
        logger.info("deleted checklist %s", document_id)
