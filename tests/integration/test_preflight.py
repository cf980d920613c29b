"""Integration tests for preflight checks."""

from __future__ import annotations
import pytest
from unittest.mock import Mock, patch

from botocore.exceptions import EndpointConnectionError
from kubernetes.config.config_exception import ConfigException

from fleet_reconcile.models import FatalPrecondition
from fleet_reconcile.preflight import check_aws_access, check_kube_access, check_repository


@pytest.mark.integration
@pytest.mark.aws
class TestCheckAwsAccess:
    @patch("fleet_reconcile.preflight.get_client")
    def test_returns_account(self, mock_get_client):
        mock_get_client.return_value.get_caller_identity.return_value = {
            "Account": "123456789012",
            "Arn": "arn:aws:iam::123456789012:user/ops",
        }

        account = check_aws_access(["us-east-1", "eu-west-1"], timeout=5)

        assert account == "123456789012"
        assert mock_get_client.call_count == 2
        mock_get_client.assert_called_with("sts", "eu-west-1", 5)

    @patch("fleet_reconcile.preflight.get_client")
    def test_expired_credentials_are_fatal(self, mock_get_client, client_error):
        mock_get_client.return_value.get_caller_identity.side_effect = client_error(
            "ExpiredToken", "The security token included in the request is expired"
        )

        with pytest.raises(FatalPrecondition, match="us-east-1"):
            check_aws_access(["us-east-1"])

    @patch("fleet_reconcile.preflight.get_client")
    def test_unreachable_endpoint_is_fatal(self, mock_get_client):
        mock_get_client.return_value.get_caller_identity.side_effect = EndpointConnectionError(
            endpoint_url="https://sts.us-east-1.amazonaws.com"
        )

        with pytest.raises(FatalPrecondition):
            check_aws_access(["us-east-1"])


@pytest.mark.integration
@pytest.mark.kubernetes
class TestCheckKubeAccess:
    @patch("fleet_reconcile.preflight.client.CoreV1Api")
    @patch("fleet_reconcile.preflight.load_kube_configuration")
    def test_reachable_hub(self, mock_load, mock_core_api):
        check_kube_access(timeout=5)

        mock_load.assert_called_once()
        mock_core_api.return_value.get_api_resources.assert_called_once_with(_request_timeout=5)

    @patch("fleet_reconcile.preflight.load_kube_configuration")
    def test_missing_kubeconfig_is_fatal(self, mock_load):
        mock_load.side_effect = ConfigException("Service host/port is not set.")

        with pytest.raises(FatalPrecondition, match="kubeconfig"):
            check_kube_access()

    @patch("fleet_reconcile.preflight.client.CoreV1Api")
    @patch("fleet_reconcile.preflight.load_kube_configuration", Mock())
    def test_unreachable_hub_is_fatal(self, mock_core_api, api_exception):
        mock_core_api.return_value.get_api_resources.side_effect = api_exception(401, "Unauthorized")

        with pytest.raises(FatalPrecondition, match="unreachable"):
            check_kube_access()


@pytest.mark.integration
class TestCheckRepository:
    def test_valid_repository(self, tmp_path):
        (tmp_path / "regions").mkdir()

        assert check_repository(str(tmp_path)) == tmp_path

    @pytest.mark.parametrize("create", [False, True], ids=["missing", "empty"])
    def test_invalid_repository(self, tmp_path, create):
        root = tmp_path / "repo"
        if create:
            root.mkdir()

        with pytest.raises(FatalPrecondition):
            check_repository(root)
