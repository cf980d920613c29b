"""AWS mutations, one function per (resource kind, operation).

Each handler takes ``(action, context)`` and either returns or raises
``botocore.exceptions.ClientError``; the executor maps errors to
outcomes. Handlers never check DRY_RUN themselves.
"""

from __future__ import annotations
from typing import Any, Callable

from botocore.exceptions import ClientError

from ..models import Operation, RemediationAction, ResourceKind, RunContext
from ..utils import get_client, get_logger
from ..utils.aws_helpers import is_not_found

logger = get_logger()

K = ResourceKind
Handler = Callable[[RemediationAction, RunContext], None]

WAITER_DELAY_SECONDS = 15
WAITER_MAX_ATTEMPTS = 40


def _ec2(action: RemediationAction, context: RunContext):
    return get_client("ec2", action.region, context.api_timeout_seconds)


def _wait(client, waiter_name: str, context: RunContext, **kwargs: Any) -> None:
    if not context.wait_for_deletion:
        return
    logger.info(
        "Waiting for deletion",
        extra={"waiter": waiter_name, "target": kwargs},
    )
    client.get_waiter(waiter_name).wait(
        WaiterConfig={"Delay": WAITER_DELAY_SECONDS, "MaxAttempts": WAITER_MAX_ATTEMPTS},
        **kwargs,
    )


# ----- compute and storage -----


def terminate_instance(action: RemediationAction, context: RunContext) -> None:
    ec2 = _ec2(action, context)
    ec2.terminate_instances(InstanceIds=[action.target_identity])
    _wait(ec2, "instance_terminated", context, InstanceIds=[action.target_identity])


def delete_volume(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).delete_volume(VolumeId=action.target_identity)


def delete_load_balancer(action: RemediationAction, context: RunContext) -> None:
    if action.parameters.get("flavor") == "v2":
        elbv2 = get_client("elbv2", action.region, context.api_timeout_seconds)
        elbv2.delete_load_balancer(
            LoadBalancerArn=action.parameters.get("arn") or action.target_identity
        )
    else:
        elb = get_client("elb", action.region, context.api_timeout_seconds)
        elb.delete_load_balancer(LoadBalancerName=action.target_identity)


def delete_database_instance(action: RemediationAction, context: RunContext) -> None:
    rds = get_client("rds", action.region, context.api_timeout_seconds)
    rds.delete_db_instance(
        DBInstanceIdentifier=action.target_identity,
        SkipFinalSnapshot=True,
        DeleteAutomatedBackups=True,
    )
    _wait(
        rds,
        "db_instance_deleted",
        context,
        DBInstanceIdentifier=action.target_identity,
    )


# ----- network -----


def delete_service_endpoint(action: RemediationAction, context: RunContext) -> None:
    response = _ec2(action, context).delete_vpc_endpoints(
        VpcEndpointIds=[action.target_identity]
    )
    # Batch API: per-endpoint failures come back in the body
    for failure in response.get("Unsuccessful", []):
        error = failure.get("Error", {})
        raise ClientError(
            {"Error": {"Code": error.get("Code", ""), "Message": error.get("Message", "")}},
            "DeleteVpcEndpoints",
        )


def delete_nat_gateway(action: RemediationAction, context: RunContext) -> None:
    ec2 = _ec2(action, context)
    ec2.delete_nat_gateway(NatGatewayId=action.target_identity)
    _wait(ec2, "nat_gateway_deleted", context, NatGatewayIds=[action.target_identity])


def release_elastic_ip(action: RemediationAction, context: RunContext) -> None:
    ec2 = _ec2(action, context)
    association_id = action.parameters.get("association_id")
    if association_id:
        try:
            ec2.disassociate_address(AssociationId=association_id)
        except ClientError as e:
            if not is_not_found(e):
                raise
    ec2.release_address(AllocationId=action.target_identity)


def detach_network_interface(action: RemediationAction, context: RunContext) -> None:
    ec2 = _ec2(action, context)
    ec2.detach_network_interface(
        AttachmentId=action.parameters["attachment_id"], Force=True
    )
    _wait(
        ec2,
        "network_interface_available",
        context,
        NetworkInterfaceIds=[action.target_identity],
    )


def delete_network_interface(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).delete_network_interface(
        NetworkInterfaceId=action.target_identity
    )


def clear_route(action: RemediationAction, context: RunContext) -> None:
    key = action.parameters["destination_key"]
    _ec2(action, context).delete_route(
        RouteTableId=action.target_identity,
        **{key: action.parameters["destination"]},
    )


def delete_route_table(action: RemediationAction, context: RunContext) -> None:
    ec2 = _ec2(action, context)
    for association_id in action.parameters.get("associations", []):
        try:
            ec2.disassociate_route_table(AssociationId=association_id)
            logger.info(
                "Disassociated route table",
                extra={
                    "route_table_id": action.target_identity,
                    "association_id": association_id,
                },
            )
        except ClientError as e:
            if not is_not_found(e):
                raise
    ec2.delete_route_table(RouteTableId=action.target_identity)


def clear_security_group_rules(action: RemediationAction, context: RunContext) -> None:
    """Revoke ingress, then egress, so cross-referencing groups can be deleted."""
    ec2 = _ec2(action, context)
    groups = ec2.describe_security_groups(GroupIds=[action.target_identity])[
        "SecurityGroups"
    ]
    for group in groups:
        if group.get("IpPermissions"):
            ec2.revoke_security_group_ingress(
                GroupId=group["GroupId"], IpPermissions=group["IpPermissions"]
            )
        if group.get("IpPermissionsEgress"):
            ec2.revoke_security_group_egress(
                GroupId=group["GroupId"], IpPermissions=group["IpPermissionsEgress"]
            )


def delete_security_group(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).delete_security_group(GroupId=action.target_identity)


def delete_network_acl(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).delete_network_acl(NetworkAclId=action.target_identity)


def delete_subnet(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).delete_subnet(SubnetId=action.target_identity)


def detach_internet_gateway(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).detach_internet_gateway(
        InternetGatewayId=action.target_identity,
        VpcId=action.parameters["vpc_id"],
    )


def delete_internet_gateway(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).delete_internet_gateway(
        InternetGatewayId=action.target_identity
    )


def delete_network(action: RemediationAction, context: RunContext) -> None:
    _ec2(action, context).delete_vpc(VpcId=action.target_identity)


AWS_HANDLERS: dict[tuple[ResourceKind, Operation], Handler] = {
    (K.COMPUTE_INSTANCE, Operation.DELETE): terminate_instance,
    (K.BLOCK_VOLUME, Operation.DELETE): delete_volume,
    (K.LOAD_BALANCER, Operation.DELETE): delete_load_balancer,
    (K.DATABASE_INSTANCE, Operation.DELETE): delete_database_instance,
    (K.SERVICE_ENDPOINT, Operation.DELETE): delete_service_endpoint,
    (K.NAT_GATEWAY, Operation.DELETE): delete_nat_gateway,
    (K.ELASTIC_IP, Operation.DELETE): release_elastic_ip,
    (K.NETWORK_INTERFACE, Operation.DETACH): detach_network_interface,
    (K.NETWORK_INTERFACE, Operation.DELETE): delete_network_interface,
    (K.ROUTE_TABLE, Operation.CLEAR_ROUTES): clear_route,
    (K.ROUTE_TABLE, Operation.DELETE): delete_route_table,
    (K.SECURITY_GROUP, Operation.CLEAR_RULES): clear_security_group_rules,
    (K.SECURITY_GROUP, Operation.DELETE): delete_security_group,
    (K.NETWORK_ACL, Operation.DELETE): delete_network_acl,
    (K.SUBNET, Operation.DELETE): delete_subnet,
    (K.INTERNET_GATEWAY, Operation.DETACH): detach_internet_gateway,
    (K.INTERNET_GATEWAY, Operation.DELETE): delete_internet_gateway,
    (K.NETWORK, Operation.DELETE): delete_network,
}
