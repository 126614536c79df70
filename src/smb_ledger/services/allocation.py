"""Allocation engine: applies payments, deposits and credits to invoices and bills."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from smb_ledger.domain.allocation import (
    AgingReport,
    AllocatableDocument,
    Allocation,
    AllocationRequest,
    AllocationSource,
    DocumentKind,
)
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.value_objects import ALLOCATION_TOLERANCE, round_money, to_decimal
from smb_ledger.exceptions import (
    AllocationMismatchError,
    AllocationNotFoundError,
    AllocationSourceNotFoundError,
    DocumentNotAllocatableError,
    DocumentNotFoundError,
    SourceExhaustedError,
    SubCentAmountError,
    TargetOverpaidError,
    ValidationError,
    ZeroOrNegativeAmountError,
)
from smb_ledger.logging_config import get_logger
from smb_ledger.repositories.interfaces import (
    AllocationRepository,
    AllocationSourceRepository,
    DocumentRepository,
    TransactionManager,
)
from smb_ledger.services.interfaces import AllocationService, LedgerService

logger = get_logger(__name__)


def _require_cents(amount: Decimal, field: str) -> Decimal:
    amount = to_decimal(amount)
    if amount != round_money(amount):
        raise SubCentAmountError(amount, field)
    return amount


class AllocationServiceImpl(AllocationService):
    """Applies sources of funds to documents, keeping both sides in step.

    Every allocation, the matching amount_applied / amount_paid increments
    and the recomputed statuses are written in one transaction. Source and
    document updates are version-checked, so a stale writer gets a
    ConcurrentModificationError instead of overwriting newer totals.

    When the source names an offset account and the document a control
    account (AR or AP), the batch also posts one journal entry moving the
    applied amount between them.
    """

    def __init__(
        self,
        document_repo: DocumentRepository,
        source_repo: AllocationSourceRepository,
        allocation_repo: AllocationRepository,
        transactions: TransactionManager,
        ledger_service: LedgerService | None = None,
        tolerance: Decimal = ALLOCATION_TOLERANCE,
    ) -> None:
        self._document_repo = document_repo
        self._source_repo = source_repo
        self._allocation_repo = allocation_repo
        self._transactions = transactions
        self._ledger_service = ledger_service
        self._tolerance = tolerance

    def create_document(self, document: AllocatableDocument) -> AllocatableDocument:
        if document.total_amount <= 0:
            raise ZeroOrNegativeAmountError(document.total_amount)
        _require_cents(document.total_amount, "total_amount")
        self._document_repo.add(document)
        logger.info(
            "document_created",
            document_id=str(document.id),
            kind=document.kind.value,
            total_amount=str(document.total_amount),
        )
        return document

    def create_source(self, source: AllocationSource) -> AllocationSource:
        if source.amount <= 0:
            raise ZeroOrNegativeAmountError(source.amount)
        _require_cents(source.amount, "amount")
        self._source_repo.add(source)
        logger.info(
            "allocation_source_created",
            source_id=str(source.id),
            kind=source.kind.value,
            amount=str(source.amount),
        )
        return source

    def get_document(self, document_id: UUID) -> AllocatableDocument:
        document = self._document_repo.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def get_source(self, source_id: UUID) -> AllocationSource:
        source = self._source_repo.get(source_id)
        if source is None:
            raise AllocationSourceNotFoundError(source_id)
        return source

    def allocate(
        self,
        source_id: UUID,
        target_id: UUID,
        amount: Decimal,
        allocation_date: date | None = None,
        memo: str = "",
    ) -> Allocation:
        allocations = self.allocate_batch(
            source_id,
            [AllocationRequest(target_id=target_id, amount=amount)],
            allocation_date=allocation_date,
            memo=memo,
        )
        return allocations[0]

    def allocate_batch(
        self,
        source_id: UUID,
        requests: Iterable[AllocationRequest],
        allocation_date: date | None = None,
        memo: str = "",
    ) -> list[Allocation]:
        """Apply one source to several documents, all or nothing.

        Each request is checked against the remaining balance left by the
        requests before it. If any request fails, nothing is written.

        Raises:
            ZeroOrNegativeAmountError: If a requested amount is not positive
            SubCentAmountError: If an amount is finer than one cent
            AllocationSourceNotFoundError: If the source doesn't exist
            DocumentNotFoundError: If a target doesn't exist
            DocumentNotAllocatableError: If the source or a target status forbids it
            AllocationMismatchError: If a target's kind or party doesn't fit the source
            SourceExhaustedError: If the source's remaining balance runs out
            TargetOverpaidError: If a request exceeds the target's balance due
        """
        requests = list(requests)
        if not requests:
            raise ValidationError("Allocation batch has no targets")
        for request in requests:
            if to_decimal(request.amount) <= 0:
                raise ZeroOrNegativeAmountError(to_decimal(request.amount))
            _require_cents(request.amount, "amount")
        allocation_date = allocation_date or date.today()

        with self._transactions.transaction():
            source = self.get_source(source_id)
            if not source.is_allocatable:
                raise DocumentNotAllocatableError(
                    source.id, "Allocation source", source.status.value
                )

            targets: dict[UUID, AllocatableDocument] = {}
            allocations: list[Allocation] = []
            for request in requests:
                amount = to_decimal(request.amount)
                target = targets.get(request.target_id)
                if target is None:
                    target = self.get_document(request.target_id)
                    targets[target.id] = target
                if not target.is_allocatable:
                    raise DocumentNotAllocatableError(
                        target.id, target.kind.value.capitalize(), target.status.value
                    )
                self._check_compatible(source, target)

                if amount > source.balance_remaining:
                    raise SourceExhaustedError(source.id, amount, source.balance_remaining)
                if amount > target.balance_due:
                    raise TargetOverpaidError(target.id, amount, target.balance_due)

                source.apply(amount, self._tolerance)
                target.apply_payment(amount, self._tolerance)
                allocations.append(
                    Allocation(
                        source_id=source.id,
                        target_id=target.id,
                        amount=amount,
                        allocation_date=allocation_date,
                        memo=memo,
                    )
                )

            entry_id = self._post_allocation_entry(
                source, targets, allocations, allocation_date
            )

            self._source_repo.update(source)
            for target in targets.values():
                self._document_repo.update(target)
            for allocation in allocations:
                allocation.journal_entry_id = entry_id
                self._allocation_repo.add(allocation)

        for allocation in allocations:
            logger.info(
                "allocation_applied",
                allocation_id=str(allocation.id),
                source_id=str(allocation.source_id),
                target_id=str(allocation.target_id),
                amount=str(allocation.amount),
                source_status=source.status.value,
                target_status=targets[allocation.target_id].status.value,
            )
        return allocations

    def remove_allocation(self, allocation_id: UUID) -> None:
        """Delete an allocation and roll both sides' totals and statuses back.

        When the allocation posted a journal entry, a counter-entry for its
        amount is posted on the same accounts.
        """
        with self._transactions.transaction():
            allocation = self._allocation_repo.get(allocation_id)
            if allocation is None:
                raise AllocationNotFoundError(allocation_id)
            source = self.get_source(allocation.source_id)
            target = self.get_document(allocation.target_id)

            source.amount_applied -= allocation.amount
            source.refresh_status(self._tolerance)
            target.amount_paid -= allocation.amount
            target.refresh_status(self._tolerance)

            if allocation.journal_entry_id is not None:
                self._post_removal_entry(source, target, allocation)

            self._allocation_repo.delete(allocation.id)
            self._source_repo.update(source)
            self._document_repo.update(target)

        logger.info(
            "allocation_removed",
            allocation_id=str(allocation_id),
            source_id=str(source.id),
            target_id=str(target.id),
            amount=str(allocation.amount),
        )

    def list_allocations_for_source(self, source_id: UUID) -> list[Allocation]:
        return list(self._allocation_repo.list_by_source(source_id))

    def list_allocations_for_target(self, target_id: UUID) -> list[Allocation]:
        return list(self._allocation_repo.list_by_target(target_id))

    def aging_report(
        self,
        kind: DocumentKind = DocumentKind.INVOICE,
        party_id: UUID | None = None,
        as_of: date | None = None,
    ) -> AgingReport:
        """Bucket open balances by days past due (current, 1-30, 31-60, 61-90, 90+)."""
        as_of = as_of or date.today()
        report = AgingReport(as_of=as_of)
        for document in self._document_repo.list_open(kind=kind, party_id=party_id):
            if document.balance_due <= self._tolerance:
                continue
            due = document.due_date or document.issue_date or as_of
            report.add(document.balance_due, (as_of - due).days)
        return report

    def _check_compatible(
        self, source: AllocationSource, target: AllocatableDocument
    ) -> None:
        if source.kind.target_kind != target.kind:
            raise AllocationMismatchError(
                source.id,
                target.id,
                f"a {source.kind.value} can only be applied to a {source.kind.target_kind.value}",
            )
        if (
            source.party_id is not None
            and target.party_id is not None
            and source.party_id != target.party_id
        ):
            raise AllocationMismatchError(
                source.id, target.id, "source and target belong to different parties"
            )

    def _post_allocation_entry(
        self,
        source: AllocationSource,
        targets: dict[UUID, AllocatableDocument],
        allocations: list[Allocation],
        allocation_date: date,
    ) -> UUID | None:
        if self._ledger_service is None or source.offset_account_id is None:
            return None

        lines: list[JournalEntryLine] = []
        offset_total = Decimal("0")
        for allocation in allocations:
            target = targets[allocation.target_id]
            if target.control_account_id is None:
                continue
            offset_total += allocation.amount
            lines.append(
                self._control_line(
                    target, target.control_account_id, allocation.amount, reverse=False
                )
            )
        if not lines:
            return None

        offset = self._offset_line(
            source, source.offset_account_id, offset_total, reverse=False
        )
        entry = JournalEntry(
            transaction_date=allocation_date,
            lines=[offset, *lines],
            reference=f"ALLOC-{source.number or source.id}",
            description=f"Apply {source.kind.value} {source.number}".strip(),
        )
        return self._ledger_service.post_entry(entry)

    def _post_removal_entry(
        self,
        source: AllocationSource,
        target: AllocatableDocument,
        allocation: Allocation,
    ) -> None:
        if (
            self._ledger_service is None
            or source.offset_account_id is None
            or target.control_account_id is None
        ):
            return
        entry = JournalEntry(
            transaction_date=date.today(),
            lines=[
                self._offset_line(
                    source, source.offset_account_id, allocation.amount, reverse=True
                ),
                self._control_line(
                    target, target.control_account_id, allocation.amount, reverse=True
                ),
            ],
            reference=f"UNALLOC-{source.number or source.id}",
            description=f"Remove allocation {allocation.id}",
        )
        self._ledger_service.post_entry(entry)

    @staticmethod
    def _offset_line(
        source: AllocationSource, account_id: UUID, amount: Decimal, reverse: bool
    ) -> JournalEntryLine:
        # Customer funds debit the offset account; vendor funds credit it.
        debit = (source.kind.target_kind == DocumentKind.INVOICE) != reverse
        factory = JournalEntryLine.debit_line if debit else JournalEntryLine.credit_line
        return factory(account_id, amount, f"{source.kind.value} {source.number}")

    @staticmethod
    def _control_line(
        target: AllocatableDocument, account_id: UUID, amount: Decimal, reverse: bool
    ) -> JournalEntryLine:
        debit = (target.kind == DocumentKind.BILL) != reverse
        factory = JournalEntryLine.debit_line if debit else JournalEntryLine.credit_line
        return factory(account_id, amount, f"{target.kind.value} {target.number}")
