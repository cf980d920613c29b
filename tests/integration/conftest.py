"""Fixtures specific to integration tests."""

import pytest
from unittest.mock import Mock

from botocore.exceptions import ClientError
from kubernetes.client.rest import ApiException


@pytest.fixture(autouse=True)
def _mark_as_integration(request):
    """Automatically mark all tests in integration/ as integration tests."""
    request.node.add_marker(pytest.mark.integration)


@pytest.fixture
def client_error():
    """Factory for botocore ClientError with a given code.

    Example:
        raise client_error("DependencyViolation", "has dependencies")
    """

    def _create(code, message="", operation="Operation"):
        return ClientError({"Error": {"Code": code, "Message": message}}, operation)

    return _create


@pytest.fixture
def api_exception():
    """Factory for kubernetes ApiException with a given HTTP status."""

    def _create(status, reason=""):
        return ApiException(status=status, reason=reason)

    return _create


@pytest.fixture
def mock_ec2_client():
    """Factory for creating mock EC2 clients with empty paginated listings.

    Example:
        ec2 = mock_ec2_client(pages={"describe_subnets": [{"Subnets": [...]}]})
    """

    def _create_mock(pages=None, **responses):
        pages = pages or {}
        mock = Mock()

        def _paginator(operation):
            paginator = Mock()
            paginator.paginate.return_value = pages.get(operation, [{}])
            return paginator

        mock.get_paginator.side_effect = _paginator
        for name, value in responses.items():
            getattr(mock, name).return_value = value
        return mock

    return _create_mock


@pytest.fixture
def mock_custom_api():
    """CustomObjectsApi mock with no registrations and no applications."""
    mock = Mock()
    mock.list_cluster_custom_object.return_value = {"items": []}
    mock.list_namespaced_custom_object.return_value = {"items": []}
    return mock


@pytest.fixture
def mock_core_api(api_exception):
    """CoreV1Api mock where every namespace is missing."""
    mock = Mock()
    mock.read_namespace.side_effect = api_exception(404, "Not Found")
    return mock
