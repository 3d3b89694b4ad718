"""Check-in rejection reasons.

Subclasses of ``ValueError`` like the other service-level validation errors;
routers translate them into HTTP responses via ``status_code`` and ``code``.
"""

from __future__ import annotations


class CheckInError(ValueError):
    code = "check_in_rejected"
    status_code = 400
    default_message = "Check-in rejected."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ChallengeNotFound(CheckInError):
    code = "challenge_not_found"
    status_code = 404
    default_message = "Challenge not found."


class NotAChallengeMember(CheckInError):
    code = "not_a_member"
    status_code = 403
    default_message = "You are not a member of this challenge."


class ChallengeEnded(CheckInError):
    code = "challenge_ended"
    status_code = 409
    default_message = "Challenge has ended."


class Eliminated(CheckInError):
    code = "eliminated"
    status_code = 403
    default_message = "You have been eliminated from this challenge."


class DeadlinePassed(CheckInError):
    code = "deadline_passed"
    status_code = 409
    default_message = "Deadline has passed."


class AlreadyCheckedIn(CheckInError):
    code = "already_checked_in"
    status_code = 409
    default_message = "You have already checked in for this period."
