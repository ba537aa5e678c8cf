"""Errors raised by a scoring pass. Each carries the HTTP status it maps to."""


class ScoringError(Exception):
    """Base class for lead scoring failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidScoringRequest(ScoringError):
    status_code = 400


class LeadNotFound(ScoringError):
    status_code = 404

    def __init__(self, lead_id: str):
        super().__init__("Lead not found")
        self.lead_id = lead_id


class NoMessagesFound(ScoringError):
    status_code = 404

    def __init__(self, lead_id: str):
        super().__init__("No messages found for lead")
        self.lead_id = lead_id


class ScorePersistenceError(ScoringError):
    """The score snapshot could not be stored; the status update already committed."""

    status_code = 500

    def __init__(self, lead_id: str, cause: Exception):
        super().__init__(f"Failed to save lead score: {cause}")
        self.lead_id = lead_id
        self.cause = cause
