"""Service descriptors and the stubs generated from them."""

from ghstubs.stubs.generator import ServiceGenerator, validate_descriptor
from ghstubs.stubs.github import (
    SERVICES,
    IssueService,
    RepositoryService,
    SearchService,
    UserService,
)
from ghstubs.stubs.page import Page
from ghstubs.stubs.service import Endpoint, Service, delete, get, patch, post, put

__all__ = [
    "SERVICES",
    "Endpoint",
    "IssueService",
    "Page",
    "RepositoryService",
    "SearchService",
    "Service",
    "ServiceGenerator",
    "UserService",
    "delete",
    "get",
    "patch",
    "post",
    "put",
    "validate_descriptor",
]
