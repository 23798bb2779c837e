"""Application use cases for the upload protocol."""

from .initiate import (
    InitiateUploadUseCase,
    build_file_descriptors,
    build_start_request,
)
from .transfer import TransferFilesUseCase
from .complete import CompleteUploadUseCase
from .abort import AbortUploadUseCase

__all__ = [
    "InitiateUploadUseCase",
    "build_file_descriptors",
    "build_start_request",
    "TransferFilesUseCase",
    "CompleteUploadUseCase",
    "AbortUploadUseCase",
]
