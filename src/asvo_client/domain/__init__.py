"""Domain public API."""

from asvo_client.domain.errors import (
    AmbiguousObsidError,
    AsvoApiError,
    AsvoError,
    AuthenticationError,
    HashMismatchError,
    JobHasNoFilesError,
    JobNotFoundError,
    JobNotReadyError,
    JobTerminalFailure,
    ManifestIntegrityError,
    PermanentIOError,
    ProtocolDecodeError,
    RetryClass,
    SubmissionRejectedError,
    TransientTransferError,
    UnsupportedJobTypeError,
)
from asvo_client.domain.identifiers import (
    IdentifierParseError,
    InvalidObsidError,
    JobId,
    Obsid,
    parse_key_value_pairs,
    parse_many_jobids_or_obsids,
)
from asvo_client.domain.jobs import (
    Delivery,
    DeliveryFormat,
    DeliveryKind,
    FileEntry,
    Job,
    JobState,
    JobStatus,
    JobType,
)
from asvo_client.domain.ports import ProgressBar, ProgressDisplay, Session, SessionFactory
from asvo_client.domain.submission import (
    DuplicateJob,
    FatalRejection,
    NewJob,
    RecoverableRejection,
    SubmissionOutcome,
    interpret_submission_response,
)
from asvo_client.domain.transfer_models import (
    FileTransferResult,
    FileTransferStatus,
    TransferOptions,
)
from asvo_client.domain.wire_models import decode_job_listing

__all__ = [
    "AmbiguousObsidError",
    "AsvoApiError",
    "AsvoError",
    "AuthenticationError",
    "Delivery",
    "DeliveryFormat",
    "DeliveryKind",
    "DuplicateJob",
    "FatalRejection",
    "FileEntry",
    "FileTransferResult",
    "FileTransferStatus",
    "HashMismatchError",
    "IdentifierParseError",
    "InvalidObsidError",
    "Job",
    "JobHasNoFilesError",
    "JobId",
    "JobNotFoundError",
    "JobNotReadyError",
    "JobState",
    "JobStatus",
    "JobTerminalFailure",
    "JobType",
    "ManifestIntegrityError",
    "NewJob",
    "Obsid",
    "PermanentIOError",
    "ProgressBar",
    "ProgressDisplay",
    "ProtocolDecodeError",
    "RecoverableRejection",
    "RetryClass",
    "Session",
    "SessionFactory",
    "SubmissionOutcome",
    "SubmissionRejectedError",
    "TransferOptions",
    "TransientTransferError",
    "UnsupportedJobTypeError",
    "decode_job_listing",
    "interpret_submission_response",
    "parse_key_value_pairs",
    "parse_many_jobids_or_obsids",
]
