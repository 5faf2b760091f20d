from pydantic import BaseModel


class PdfDocument(BaseModel):
    filename: str
    content: bytes


class PdfBase64Response(BaseModel):
    filename: str
    content_type: str = "application/pdf"
    data: str
