# photo_modules/errors.py
from typing import Sequence


class PhotoModulesError(Exception):
    """Base error for callers that prefer raising over inspecting results."""


class PayloadRejected(PhotoModulesError):
    """The payload's top-level structure could not be validated."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(f"photo modules payload rejected: {', '.join(self.errors)}")
