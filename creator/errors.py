class CreatorError(Exception):
    """Base class for errors raised by the content creator pipeline."""


class ImageDecodeError(CreatorError):
    """The uploaded file could not be decoded or normalized in time."""


class InvalidSubmission(CreatorError):
    """A submission is missing its prompt or its image."""


class SubmissionInProgress(CreatorError):
    """A submission was attempted while another one is still outstanding."""
