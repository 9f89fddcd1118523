"""
Infrastructure - Attachment encoding.
"""

import base64
import mimetypes

from voucher_ledger.domain.services import IAttachmentEncoder
from voucher_ledger.domain.value_objects import Attachment

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class Base64AttachmentEncoder(IAttachmentEncoder):
    """Raw bytes to base64 content; the content type is guessed from the file name when not given."""

    def encode(
        self,
        document_name: str,
        content: bytes,
        content_type: str | None = None,
        doc_type_id: int | None = None,
        description: str | None = None,
    ) -> Attachment:
        if not content_type:
            content_type = mimetypes.guess_type(document_name)[0] or DEFAULT_CONTENT_TYPE
        return Attachment(
            document_name=document_name,
            content=base64.b64encode(content).decode("ascii"),
            content_type=content_type,
            file_size=len(content),
            doc_type_id=doc_type_id,
            description=description,
        )

    @staticmethod
    def decode(attachment: Attachment) -> bytes:
        return base64.b64decode(attachment.content)
