"""Auto-fill exceptions."""


class AutoFillError(Exception):
    """Base exception for SOA auto-fill runs."""

    pass


class DocumentNotFoundError(AutoFillError):
    """Document or its configuration is missing for the organization."""

    def __init__(self, document_id: str, organization_id: str):
        self.document_id = document_id
        self.organization_id = organization_id
        super().__init__("SOA document not found")
