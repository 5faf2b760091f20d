from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from uuid import UUID
from datetime import date

from invoicehub.database.database import get_db
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.invoices.service import InvoicePdfService, to_base64
from invoicehub.modules.invoices.schemas import PdfDocument, PdfBase64Response

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def _pdf_response(document: PdfDocument) -> Response:
    return Response(
        content=document.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'}
    )


def _base64_response(document: PdfDocument) -> PdfBase64Response:
    filename, data = to_base64(document)
    return PdfBase64Response(filename=filename, data=data)


@router.get("/statement")
def download_statement(
    client_id: UUID = Query(...),
    start_date: date = Query(..., description="Period start (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Period end (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    """
    Statement of a client's transactions over a period

    Clients can only request their own statement.
    """
    document = InvoicePdfService(db).generate_statement(client_id, start_date, end_date, auth_context)
    return _pdf_response(document)


@router.get("/statement/base64", response_model=PdfBase64Response)
def statement_base64(
    client_id: UUID = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    document = InvoicePdfService(db).generate_statement(client_id, start_date, end_date, auth_context)
    return _base64_response(document)


@router.get("/{transaction_id}/pdf")
def download_invoice(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    """
    Invoice PDF for a single transaction
    """
    return _pdf_response(InvoicePdfService(db).generate_invoice(transaction_id, auth_context))


@router.get("/{transaction_id}/pdf/base64", response_model=PdfBase64Response)
def invoice_base64(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    """Same document, base64 encoded for the portal viewer."""
    return _base64_response(InvoicePdfService(db).generate_invoice(transaction_id, auth_context))
