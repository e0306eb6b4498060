from __future__ import annotations


class ConfigurationMissing(RuntimeError):
    def __init__(self, name: str):
        super().__init__(f"Missing required env var: {name}")
        self.name = name


class IntakeError(Exception):
    """Base for failures that end a submission with a client-visible response."""

    status_code = 500
    public_message = "Internal server error"


class ValidationFailed(IntakeError):
    status_code = 400

    def __init__(self, field_name: str):
        super().__init__(f"Missing required field: {field_name}")
        self.field_name = field_name
        self.public_message = f"Missing required field: {field_name}"


class PayloadTooLarge(IntakeError):
    status_code = 400
    public_message = "Payload too large"


class MalformedSubmission(IntakeError):
    status_code = 400
    public_message = "Invalid multipart body"


class AbuseDetected(IntakeError):
    # answered as success so automated submitters get no signal
    status_code = 200
    public_message = ""

    def __init__(self, field_name: str):
        super().__init__(f"Honeypot field populated: {field_name}")
        self.field_name = field_name


class LedgerWriteFailed(IntakeError):
    pass


class NotificationFailed(IntakeError):
    pass
