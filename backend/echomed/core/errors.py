"""Exceptions raised by the timeline core and its collaborators."""


class EchoMedError(Exception):
    """Base class for every error raised by the application."""


class InvalidInputError(EchoMedError):
    """A command was given input it cannot record (empty note, empty transcript...)."""


class PatientNotFoundError(EchoMedError):
    def __init__(self, patient_id: str):
        super().__init__(f"Patient not found: {patient_id}")
        self.patient_id = patient_id


class EventNotFoundError(EchoMedError):
    def __init__(self, event_id: str):
        super().__init__(f"Timeline event not found: {event_id}")
        self.event_id = event_id


class AnalysisError(EchoMedError):
    """The AI analysis collaborator failed or returned an unusable result."""


class PersistenceError(EchoMedError):
    """Reading or writing the durable snapshot failed."""


class MigrationError(EchoMedError):
    """The legacy history could not be migrated; nothing was committed."""
