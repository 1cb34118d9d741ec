"""Administrative endpoints for wallet balances, top-ups and ledger review."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wallet_ledger.core.container import ApplicationContainer
from wallet_ledger.domain.common import (
    ActionOutcome,
    ConstraintViolationError,
    InvalidStateError,
    NotFoundError,
    TransientStoreError,
    TransientSyncError,
    ValidationError,
    WalletError,
)
from wallet_ledger.domain.ledger import NewLedgerEntry
from wallet_ledger.domain.ledger.service import LedgerService
from wallet_ledger.domain.topups import TopupService
from wallet_ledger.domain.transactions import TransactionStatusService
from wallet_ledger.domain.wallets import WalletService
from wallet_ledger.interfaces.http.deps import (
    get_app_container,
    get_ledger_service,
    get_topup_service,
    get_transaction_status_service,
    get_wallet_service,
)
from wallet_ledger.schemas import (
    ActionOutcomeResponse,
    AdminActionRequest,
    BalanceResponse,
    BatchBalanceResponse,
    BulkSyncResponse,
    DiscrepancyListResponse,
    DiscrepancyResponse,
    IntegrityResponse,
    LedgerEntryResponse,
    RecentTransactionsResponse,
    SuccessResponse,
    SyncResponse,
    TopupCreateRequest,
    TopupListResponse,
    TopupRequestResponse,
    TransactionCreateRequest,
    TransactionStatusUpdate,
    WalletSummaryResponse,
)

router = APIRouter()


def _http_error(exc: WalletError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Validation failed", "errors": exc.errors},
        )
    if isinstance(exc, ConstraintViolationError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": exc.message, "category": exc.category},
        )
    if isinstance(exc, (TransientStoreError, TransientSyncError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _outcome_to_response(outcome: ActionOutcome) -> ActionOutcomeResponse:
    return ActionOutcomeResponse(
        status=outcome.status,
        request=TopupRequestResponse.model_validate(outcome.record) if outcome.record else None,
        transaction=LedgerEntryResponse.model_validate(outcome.transaction) if outcome.transaction else None,
        balance=outcome.balance,
        synced_at=outcome.synced_at,
        sync_warning=outcome.sync_warning,
    )


@router.get("/balances/{agent_id}", response_model=BalanceResponse)
async def agent_balance(
    agent_id: str,
    container: ApplicationContainer = Depends(get_app_container),
) -> BalanceResponse:
    try:
        breakdown = await container.calculator.breakdown(agent_id)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return BalanceResponse.model_validate(breakdown)


@router.get("/balances", response_model=BatchBalanceResponse)
async def batch_balances(
    agent_id: List[str] = Query(default=[]),
    container: ApplicationContainer = Depends(get_app_container),
) -> BatchBalanceResponse:
    result = await container.calculator.calculate_many(agent_id)
    return BatchBalanceResponse.model_validate(result)


@router.get("/transactions", response_model=RecentTransactionsResponse)
async def recent_transactions(
    agent_id: List[str] = Query(default=[]),
    limit: int = Query(default=50, ge=1, le=500),
    wallets: WalletService = Depends(get_wallet_service),
) -> RecentTransactionsResponse:
    try:
        entries, balances = await wallets.recent_transactions(agent_id, limit)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return RecentTransactionsResponse(
        transactions=[LedgerEntryResponse.model_validate(entry) for entry in entries],
        balances=BatchBalanceResponse.model_validate(balances),
    )


@router.post("/transactions", response_model=ActionOutcomeResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreateRequest,
    ledger: LedgerService = Depends(get_ledger_service),
) -> ActionOutcomeResponse:
    try:
        outcome = await ledger.record_entry(NewLedgerEntry(**payload.model_dump()))
    except WalletError as exc:
        raise _http_error(exc) from exc
    return _outcome_to_response(outcome)


@router.post("/transactions/{transaction_id}/status", response_model=ActionOutcomeResponse)
async def update_transaction_status(
    transaction_id: str,
    payload: TransactionStatusUpdate,
    service: TransactionStatusService = Depends(get_transaction_status_service),
) -> ActionOutcomeResponse:
    try:
        outcome = await service.update_status(transaction_id, payload.status, payload.admin_id, payload.notes)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return _outcome_to_response(outcome)


@router.post("/topups", response_model=TopupRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_topup_request(
    payload: TopupCreateRequest,
    topups: TopupService = Depends(get_topup_service),
) -> TopupRequestResponse:
    try:
        request = await topups.create_request(agent_id=payload.agent_id, amount=payload.amount, notes=payload.notes)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return TopupRequestResponse.model_validate(request)


@router.get("/topups", response_model=TopupListResponse)
async def list_topup_requests(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    agent_id: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    topups: TopupService = Depends(get_topup_service),
) -> TopupListResponse:
    requests = await topups.list_requests(status=status_filter, agent_id=agent_id, limit=limit, offset=offset)
    return TopupListResponse(requests=[TopupRequestResponse.model_validate(item) for item in requests])


@router.get("/topups/{request_id}", response_model=TopupRequestResponse)
async def get_topup_request(
    request_id: str,
    topups: TopupService = Depends(get_topup_service),
) -> TopupRequestResponse:
    try:
        request = await topups.get_request(request_id)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return TopupRequestResponse.model_validate(request)


@router.post("/topups/{request_id}/approve", response_model=ActionOutcomeResponse)
async def approve_topup_request(
    request_id: str,
    payload: AdminActionRequest,
    topups: TopupService = Depends(get_topup_service),
) -> ActionOutcomeResponse:
    try:
        outcome = await topups.approve(request_id, payload.admin_id)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return _outcome_to_response(outcome)


@router.post("/topups/{request_id}/reject", response_model=ActionOutcomeResponse)
async def reject_topup_request(
    request_id: str,
    payload: AdminActionRequest,
    topups: TopupService = Depends(get_topup_service),
) -> ActionOutcomeResponse:
    try:
        outcome = await topups.reject(request_id, payload.admin_id, payload.notes)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return _outcome_to_response(outcome)


@router.delete("/topups/{request_id}", response_model=SuccessResponse)
async def delete_topup_request(
    request_id: str,
    topups: TopupService = Depends(get_topup_service),
) -> SuccessResponse:
    try:
        await topups.delete(request_id)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return SuccessResponse(message=f"Top-up request {request_id} deleted")


@router.post("/sync/{agent_id}", response_model=SyncResponse)
async def sync_agent_balance(
    agent_id: str,
    container: ApplicationContainer = Depends(get_app_container),
) -> SyncResponse:
    try:
        result = await container.synchronizer.sync(agent_id)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return SyncResponse.model_validate(result)


@router.post("/sync", response_model=BulkSyncResponse)
async def sync_all_balances(wallets: WalletService = Depends(get_wallet_service)) -> BulkSyncResponse:
    try:
        result = await wallets.reconcile_all()
    except WalletError as exc:
        raise _http_error(exc) from exc
    return BulkSyncResponse.model_validate(result)


@router.get("/integrity/{agent_id}", response_model=IntegrityResponse)
async def check_wallet_integrity(
    agent_id: str,
    wallets: WalletService = Depends(get_wallet_service),
) -> IntegrityResponse:
    try:
        report = await wallets.check_integrity(agent_id)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return IntegrityResponse.model_validate(report)


@router.get("/summary/{agent_id}", response_model=WalletSummaryResponse)
async def wallet_summary(
    agent_id: str,
    wallets: WalletService = Depends(get_wallet_service),
) -> WalletSummaryResponse:
    try:
        summary = await wallets.summary(agent_id)
    except WalletError as exc:
        raise _http_error(exc) from exc
    return WalletSummaryResponse.model_validate(summary)


@router.get("/discrepancies", response_model=DiscrepancyListResponse)
async def balance_discrepancies(
    limit: int = Query(default=10, ge=1, le=100),
    wallets: WalletService = Depends(get_wallet_service),
) -> DiscrepancyListResponse:
    discrepancies = await wallets.discrepancy_report(limit)
    return DiscrepancyListResponse(
        discrepancies=[DiscrepancyResponse.model_validate(item) for item in discrepancies]
    )
