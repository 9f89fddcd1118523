"""
API Routers - journal and payment voucher endpoints.

Both voucher types share one router factory; each gets its own prefix and gateway.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status

from voucher_ledger.api.dependencies import (
    Gateways,
    get_gateways,
    raise_for_result,
    require,
)
from voucher_ledger.application.dto.voucher_dto import (
    ApprovalRequestDTO,
    AttachmentDTO,
    AttachmentResponseDTO,
    BulkApprovalRequestDTO,
    BulkResultDTO,
    OperationResultDTO,
    ReversalRequestDTO,
    ValidationResultDTO,
    VoucherCreateDTO,
    VoucherResponseDTO,
)
from voucher_ledger.application.gateway import VoucherLedgerGateway
from voucher_ledger.core.security import Permission
from voucher_ledger.domain.value_objects import PostingStatus, SessionContext, VoucherFilters, VoucherType


def build_voucher_router(voucher_type: VoucherType, prefix: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    def get_gateway(gateways: Gateways = Depends(get_gateways)) -> VoucherLedgerGateway:
        return gateways.for_type(voucher_type)

    @router.post("", response_model=OperationResultDTO, status_code=status.HTTP_201_CREATED)
    def create_voucher(
        dto: VoucherCreateDTO,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_CREATE)),
    ):
        """
        Create a voucher in Draft.

        - Debits must equal credits (tolerance 0.01)
        - Every violation is reported, not just the first
        """
        result = gateway.create(dto.to_domain(voucher_type), ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.post("/validate", response_model=ValidationResultDTO)
    def validate_voucher(dto: VoucherCreateDTO, gateway: VoucherLedgerGateway = Depends(get_gateway)):
        """Dry-run the pre-submission checks without calling the ledger store."""
        return ValidationResultDTO.from_result(gateway.validate(dto.to_domain(voucher_type)))

    @router.get("", response_model=OperationResultDTO)
    def list_vouchers(
        company_id: int | None = None,
        fiscal_year_id: int | None = None,
        posting_status: PostingStatus | None = Query(None, alias="status"),
        supplier_id: int | None = None,
        account_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        search: str | None = None,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
    ):
        filters = VoucherFilters(
            company_id=company_id or ctx.company_id,
            fiscal_year_id=fiscal_year_id,
            status=posting_status,
            supplier_id=supplier_id,
            account_id=account_id,
            date_from=date_from,
            date_to=date_to,
            search_text=search,
        )
        result = gateway.search(filters) if search else gateway.list_vouchers(filters)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.get("/pending-approvals", response_model=OperationResultDTO)
    def pending_approvals(
        company_id: int | None = None,
        fiscal_year_id: int | None = None,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
    ):
        result = gateway.pending_approvals(company_id or ctx.company_id, fiscal_year_id)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.get("/next-number", response_model=OperationResultDTO)
    def next_voucher_number(
        fiscal_year_id: int,
        company_id: int | None = None,
        transaction_date: date | None = None,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_CREATE)),
    ):
        result = gateway.next_voucher_number(company_id or ctx.company_id, fiscal_year_id, transaction_date)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.get("/exists", response_model=OperationResultDTO)
    def voucher_number_exists(
        voucher_no: str,
        company_id: int | None = None,
        posting_id: int | None = None,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
    ):
        result = gateway.voucher_number_exists(voucher_no, company_id or ctx.company_id, posting_id)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.get("/summary", response_model=OperationResultDTO)
    def summary_report(
        company_id: int | None = None,
        fiscal_year_id: int | None = None,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.REPORT_VIEW)),
    ):
        result = gateway.summary_report(company_id or ctx.company_id, fiscal_year_id)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.post("/bulk-approve", response_model=BulkResultDTO)
    def bulk_approve(
        dto: BulkApprovalRequestDTO,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_APPROVE)),
    ):
        """Approve or reject many vouchers; each one succeeds or fails on its own."""
        return BulkResultDTO.from_result(gateway.bulk_approve(dto.voucher_nos, dto.action, dto.comments, ctx))

    if voucher_type is VoucherType.PAYMENT:

        @router.get("/suppliers/{supplier_id}/balance", response_model=OperationResultDTO)
        def supplier_outstanding_balance(
            supplier_id: int,
            balance_date: date | None = None,
            gateway: VoucherLedgerGateway = Depends(get_gateway),
            ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
        ):
            result = gateway.supplier_outstanding_balance(supplier_id, balance_date)
            raise_for_result(result)
            return OperationResultDTO.from_result(result)

        @router.get("/suppliers/{supplier_id}/payments", response_model=OperationResultDTO)
        def supplier_payment_history(
            supplier_id: int,
            date_from: date | None = None,
            date_to: date | None = None,
            gateway: VoucherLedgerGateway = Depends(get_gateway),
            ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
        ):
            result = gateway.supplier_payment_history(supplier_id, date_from, date_to)
            raise_for_result(result)
            return OperationResultDTO.from_result(result)

    @router.get("/{voucher_no}", response_model=VoucherResponseDTO)
    def get_voucher(
        voucher_no: str,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
    ):
        result = gateway.get(voucher_no, ctx)
        raise_for_result(result)
        return VoucherResponseDTO.from_entity(result.data)

    @router.put("/{voucher_no}", response_model=OperationResultDTO)
    def update_voucher(
        voucher_no: str,
        dto: VoucherCreateDTO,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_EDIT)),
    ):
        result = gateway.update(voucher_no, dto.to_domain(voucher_type), ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.delete("/{voucher_no}", response_model=OperationResultDTO)
    def delete_voucher(
        voucher_no: str,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_DELETE)),
    ):
        result = gateway.delete(voucher_no, ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.post("/{voucher_no}/submit", response_model=OperationResultDTO)
    def submit_voucher(
        voucher_no: str,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_SUBMIT)),
    ):
        result = gateway.submit_for_approval(voucher_no, ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.post("/{voucher_no}/approval", response_model=OperationResultDTO)
    def approve_or_reject(
        voucher_no: str,
        dto: ApprovalRequestDTO,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_APPROVE)),
    ):
        result = gateway.approve_or_reject(voucher_no, dto.action, dto.comments, ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.post("/{voucher_no}/reset-approval", response_model=OperationResultDTO)
    def reset_approval(
        voucher_no: str,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_RESET_APPROVAL)),
    ):
        result = gateway.reset_approval(voucher_no, ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.post("/{voucher_no}/reverse", response_model=OperationResultDTO)
    def reverse_voucher(
        voucher_no: str,
        dto: ReversalRequestDTO,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_REVERSE)),
    ):
        """Create a linked counter-voucher; the original's lines are never touched."""
        result = gateway.reverse(voucher_no, dto.reason, ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.get("/{voucher_no}/attachments", response_model=list[AttachmentResponseDTO])
    def list_attachments(
        voucher_no: str,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_VIEW)),
    ):
        loaded = gateway.get(voucher_no, ctx)
        raise_for_result(loaded)
        result = gateway.attachments(loaded.data.posting_id)
        raise_for_result(result)
        return [AttachmentResponseDTO.model_validate(a) for a in result.data]

    @router.post("/{voucher_no}/attachments", response_model=OperationResultDTO, status_code=status.HTTP_201_CREATED)
    async def upload_attachment(
        voucher_no: str,
        request: Request,
        document_name: str = Query(..., min_length=1),
        doc_type_id: int | None = None,
        description: str | None = None,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_EDIT)),
    ):
        """Raw request body is the file; it is stored base64 encoded."""
        loaded = gateway.get(voucher_no, ctx)
        raise_for_result(loaded)
        content_type = request.headers.get("content-type")
        if content_type in (None, "application/octet-stream"):
            content_type = None
        attachment = gateway.encode_attachment(
            document_name, await request.body(), content_type, doc_type_id, description
        )
        result = gateway.add_attachment(loaded.data.posting_id, attachment, ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.post("/{voucher_no}/attachments/json", response_model=OperationResultDTO, status_code=status.HTTP_201_CREATED)
    def add_attachment(
        voucher_no: str,
        dto: AttachmentDTO,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_EDIT)),
    ):
        loaded = gateway.get(voucher_no, ctx)
        raise_for_result(loaded)
        result = gateway.add_attachment(loaded.data.posting_id, dto.to_domain(), ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    @router.delete("/{voucher_no}/attachments/{attachment_id}", response_model=OperationResultDTO)
    def delete_attachment(
        voucher_no: str,
        attachment_id: int,
        gateway: VoucherLedgerGateway = Depends(get_gateway),
        ctx: SessionContext = Depends(require(Permission.VOUCHER_EDIT)),
    ):
        result = gateway.delete_attachment(attachment_id, ctx)
        raise_for_result(result)
        return OperationResultDTO.from_result(result)

    return router


journal_router = build_voucher_router(VoucherType.JOURNAL, "/api/v1/journal-vouchers", "Journal vouchers")
payment_router = build_voucher_router(VoucherType.PAYMENT, "/api/v1/payment-vouchers", "Payment vouchers")
