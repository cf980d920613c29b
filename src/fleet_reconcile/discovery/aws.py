"""AWS resource queries, one per resource kind.

Every query takes ``(region, vpc_id=None, timeout=...)`` and returns a
list of ResourceEntity. With ``vpc_id`` set, only resources contained in
that VPC are returned; this is what second-pass discovery uses.
"""

from __future__ import annotations
from typing import Any, Callable, Iterator

from ..models import ResourceEntity, ResourceKind
from ..utils import convert_tags_to_dict, get_client

ELB_TAG_BATCH = 20


def _paginate(client, operation: str, key: str, **kwargs) -> Iterator[dict[str, Any]]:
    paginator = client.get_paginator(operation)
    for page in paginator.paginate(**kwargs):
        yield from page.get(key, [])


def _vpc_filters(vpc_id: str | None, name: str = "vpc-id") -> list[dict[str, Any]]:
    return [{"Name": name, "Values": [vpc_id]}] if vpc_id else []


def _entity(
    kind: ResourceKind,
    identity: str,
    region: str,
    tags: dict[str, str],
    container_ref: str | None = None,
    state: str = "",
    **details: Any,
) -> ResourceEntity:
    return ResourceEntity(
        kind=kind,
        identity=identity,
        region=region,
        display_name=tags.get("Name") or None,
        container_ref=container_ref,
        lifecycle_state=state,
        tags=tags,
        details=details,
    )


def list_compute_instances(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    filters = [
        {
            "Name": "instance-state-name",
            "Values": ["pending", "running", "stopping", "stopped"],
        }
    ] + _vpc_filters(vpc_id)
    entities = []
    for reservation in _paginate(ec2, "describe_instances", "Reservations", Filters=filters):
        for instance in reservation.get("Instances", []):
            entities.append(
                _entity(
                    ResourceKind.COMPUTE_INSTANCE,
                    instance["InstanceId"],
                    region,
                    convert_tags_to_dict(instance.get("Tags")),
                    container_ref=instance.get("VpcId"),
                    state=instance.get("State", {}).get("Name", ""),
                    subnet_id=instance.get("SubnetId"),
                )
            )
    return entities


def list_block_volumes(region: str, vpc_id: str | None = None, timeout: int = 30):
    # Volumes are not contained in a VPC
    if vpc_id:
        return []
    ec2 = get_client("ec2", region, timeout)
    return [
        _entity(
            ResourceKind.BLOCK_VOLUME,
            volume["VolumeId"],
            region,
            convert_tags_to_dict(volume.get("Tags")),
            state=volume.get("State", ""),
            attached_instances=[
                a["InstanceId"] for a in volume.get("Attachments", [])
            ],
        )
        for volume in _paginate(ec2, "describe_volumes", "Volumes")
    ]


def _elb_tags(client, names: list[str], arn_mode: bool) -> dict[str, dict[str, str]]:
    tags: dict[str, dict[str, str]] = {}
    for start in range(0, len(names), ELB_TAG_BATCH):
        batch = names[start : start + ELB_TAG_BATCH]
        if arn_mode:
            response = client.describe_tags(ResourceArns=batch)
            key = "ResourceArn"
        else:
            response = client.describe_tags(LoadBalancerNames=batch)
            key = "LoadBalancerName"
        for desc in response.get("TagDescriptions", []):
            tags[desc[key]] = convert_tags_to_dict(desc.get("Tags"))
    return tags


def list_load_balancers(region: str, vpc_id: str | None = None, timeout: int = 30):
    """Classic ELBs and ALB/NLBs."""
    elb = get_client("elb", region, timeout)
    elbv2 = get_client("elbv2", region, timeout)
    entities = []

    classic = [
        lb
        for lb in _paginate(elb, "describe_load_balancers", "LoadBalancerDescriptions")
        if not vpc_id or lb.get("VPCId") == vpc_id
    ]
    classic_tags = _elb_tags(elb, [lb["LoadBalancerName"] for lb in classic], False)
    for lb in classic:
        name = lb["LoadBalancerName"]
        tags = classic_tags.get(name, {})
        entity = _entity(
            ResourceKind.LOAD_BALANCER,
            name,
            region,
            tags,
            container_ref=lb.get("VPCId"),
            state="active",
            flavor="classic",
        )
        entity.display_name = tags.get("Name") or name
        entities.append(entity)

    modern = [
        lb
        for lb in _paginate(elbv2, "describe_load_balancers", "LoadBalancers")
        if not vpc_id or lb.get("VpcId") == vpc_id
    ]
    modern_tags = _elb_tags(elbv2, [lb["LoadBalancerArn"] for lb in modern], True)
    for lb in modern:
        arn = lb["LoadBalancerArn"]
        tags = modern_tags.get(arn, {})
        entity = _entity(
            ResourceKind.LOAD_BALANCER,
            arn,
            region,
            tags,
            container_ref=lb.get("VpcId"),
            state=lb.get("State", {}).get("Code", ""),
            flavor="v2",
            arn=arn,
        )
        entity.display_name = tags.get("Name") or lb.get("LoadBalancerName")
        entities.append(entity)

    return entities


def list_database_instances(region: str, vpc_id: str | None = None, timeout: int = 30):
    rds = get_client("rds", region, timeout)
    entities = []
    for db in _paginate(rds, "describe_db_instances", "DBInstances"):
        db_vpc = db.get("DBSubnetGroup", {}).get("VpcId")
        if vpc_id and db_vpc != vpc_id:
            continue
        tags = convert_tags_to_dict(db.get("TagList"))
        entity = _entity(
            ResourceKind.DATABASE_INSTANCE,
            db["DBInstanceIdentifier"],
            region,
            tags,
            container_ref=db_vpc,
            state=db.get("DBInstanceStatus", ""),
        )
        entity.display_name = tags.get("Name") or db["DBInstanceIdentifier"]
        entities.append(entity)
    return entities


def list_service_endpoints(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    return [
        _entity(
            ResourceKind.SERVICE_ENDPOINT,
            endpoint["VpcEndpointId"],
            region,
            convert_tags_to_dict(endpoint.get("Tags")),
            container_ref=endpoint.get("VpcId"),
            state=endpoint.get("State", ""),
            endpoint_type=endpoint.get("VpcEndpointType"),
        )
        for endpoint in _paginate(
            ec2, "describe_vpc_endpoints", "VpcEndpoints", Filters=_vpc_filters(vpc_id)
        )
    ]


def list_nat_gateways(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    filters = [{"Name": "state", "Values": ["available", "pending"]}] + _vpc_filters(
        vpc_id
    )
    return [
        _entity(
            ResourceKind.NAT_GATEWAY,
            nat["NatGatewayId"],
            region,
            convert_tags_to_dict(nat.get("Tags")),
            container_ref=nat.get("VpcId"),
            state=nat.get("State", ""),
            subnet_id=nat.get("SubnetId"),
        )
        for nat in _paginate(ec2, "describe_nat_gateways", "NatGateways", Filter=filters)
    ]


def list_elastic_ips(region: str, vpc_id: str | None = None, timeout: int = 30):
    # Addresses are regional, not VPC-scoped
    if vpc_id:
        return []
    ec2 = get_client("ec2", region, timeout)
    entities = []
    for address in ec2.describe_addresses().get("Addresses", []):
        allocation_id = address.get("AllocationId")
        if not allocation_id:
            continue
        entities.append(
            _entity(
                ResourceKind.ELASTIC_IP,
                allocation_id,
                region,
                convert_tags_to_dict(address.get("Tags")),
                state="associated" if address.get("AssociationId") else "unassociated",
                allocation_id=allocation_id,
                public_ip=address.get("PublicIp"),
                association_id=address.get("AssociationId"),
            )
        )
    return entities


def list_network_interfaces(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    entities = []
    for eni in _paginate(
        ec2,
        "describe_network_interfaces",
        "NetworkInterfaces",
        Filters=_vpc_filters(vpc_id),
    ):
        attachment = eni.get("Attachment") or {}
        entities.append(
            _entity(
                ResourceKind.NETWORK_INTERFACE,
                eni["NetworkInterfaceId"],
                region,
                convert_tags_to_dict(eni.get("TagSet")),
                container_ref=eni.get("VpcId"),
                state=eni.get("Status", ""),
                attachment_id=attachment.get("AttachmentId"),
                attached_instance=attachment.get("InstanceId"),
                device_index=attachment.get("DeviceIndex"),
                requester_managed=bool(eni.get("RequesterManaged")),
                interface_type=eni.get("InterfaceType"),
            )
        )
    return entities


def _route_destination(route: dict[str, Any]) -> dict[str, str] | None:
    for key in (
        "DestinationCidrBlock",
        "DestinationIpv6CidrBlock",
        "DestinationPrefixListId",
    ):
        if route.get(key):
            return {"key": key, "value": route[key]}
    return None


def list_route_tables(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    entities = []
    for rt in _paginate(
        ec2, "describe_route_tables", "RouteTables", Filters=_vpc_filters(vpc_id)
    ):
        associations = rt.get("Associations", [])
        is_main = any(assoc.get("Main", False) for assoc in associations)
        # Only user-created routes can be deleted; local and propagated routes stay
        routes = [
            dest
            for dest in (
                _route_destination(route)
                for route in rt.get("Routes", [])
                if route.get("GatewayId") != "local"
                and route.get("Origin") == "CreateRoute"
            )
            if dest
        ]
        entities.append(
            _entity(
                ResourceKind.ROUTE_TABLE,
                rt["RouteTableId"],
                region,
                convert_tags_to_dict(rt.get("Tags")),
                container_ref=rt.get("VpcId"),
                state="main" if is_main else "custom",
                is_main=is_main,
                associations=[
                    assoc["RouteTableAssociationId"]
                    for assoc in associations
                    if not assoc.get("Main", False)
                    and assoc.get("RouteTableAssociationId")
                ],
                routes=routes,
            )
        )
    return entities


def list_security_groups(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    return [
        _entity(
            ResourceKind.SECURITY_GROUP,
            sg["GroupId"],
            region,
            convert_tags_to_dict(sg.get("Tags")),
            container_ref=sg.get("VpcId"),
            state="available",
            group_name=sg.get("GroupName"),
            is_default=sg.get("GroupName") == "default",
            has_rules=bool(sg.get("IpPermissions") or sg.get("IpPermissionsEgress")),
        )
        for sg in _paginate(
            ec2, "describe_security_groups", "SecurityGroups", Filters=_vpc_filters(vpc_id)
        )
    ]


def list_network_acls(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    return [
        _entity(
            ResourceKind.NETWORK_ACL,
            acl["NetworkAclId"],
            region,
            convert_tags_to_dict(acl.get("Tags")),
            container_ref=acl.get("VpcId"),
            state="default" if acl.get("IsDefault") else "custom",
            is_default=bool(acl.get("IsDefault")),
        )
        for acl in _paginate(
            ec2, "describe_network_acls", "NetworkAcls", Filters=_vpc_filters(vpc_id)
        )
    ]


def list_subnets(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    return [
        _entity(
            ResourceKind.SUBNET,
            subnet["SubnetId"],
            region,
            convert_tags_to_dict(subnet.get("Tags")),
            container_ref=subnet.get("VpcId"),
            state=subnet.get("State", ""),
            cidr_block=subnet.get("CidrBlock"),
        )
        for subnet in _paginate(
            ec2, "describe_subnets", "Subnets", Filters=_vpc_filters(vpc_id)
        )
    ]


def list_internet_gateways(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    entities = []
    for igw in _paginate(
        ec2,
        "describe_internet_gateways",
        "InternetGateways",
        Filters=_vpc_filters(vpc_id, "attachment.vpc-id"),
    ):
        attached = [a["VpcId"] for a in igw.get("Attachments", []) if a.get("VpcId")]
        entities.append(
            _entity(
                ResourceKind.INTERNET_GATEWAY,
                igw["InternetGatewayId"],
                region,
                convert_tags_to_dict(igw.get("Tags")),
                container_ref=attached[0] if attached else None,
                state="attached" if attached else "detached",
                attached_vpcs=attached,
            )
        )
    return entities


def list_networks(region: str, vpc_id: str | None = None, timeout: int = 30):
    ec2 = get_client("ec2", region, timeout)
    return [
        _entity(
            ResourceKind.NETWORK,
            vpc["VpcId"],
            region,
            convert_tags_to_dict(vpc.get("Tags")),
            state=vpc.get("State", ""),
            is_default=bool(vpc.get("IsDefault")),
            cidr_block=vpc.get("CidrBlock"),
        )
        for vpc in _paginate(ec2, "describe_vpcs", "Vpcs", Filters=_vpc_filters(vpc_id))
    ]


KIND_QUERIES: dict[ResourceKind, Callable[..., list[ResourceEntity]]] = {
    ResourceKind.LOAD_BALANCER: list_load_balancers,
    ResourceKind.DATABASE_INSTANCE: list_database_instances,
    ResourceKind.COMPUTE_INSTANCE: list_compute_instances,
    ResourceKind.BLOCK_VOLUME: list_block_volumes,
    ResourceKind.SERVICE_ENDPOINT: list_service_endpoints,
    ResourceKind.NAT_GATEWAY: list_nat_gateways,
    ResourceKind.ELASTIC_IP: list_elastic_ips,
    ResourceKind.NETWORK_INTERFACE: list_network_interfaces,
    ResourceKind.ROUTE_TABLE: list_route_tables,
    ResourceKind.SECURITY_GROUP: list_security_groups,
    ResourceKind.NETWORK_ACL: list_network_acls,
    ResourceKind.SUBNET: list_subnets,
    ResourceKind.INTERNET_GATEWAY: list_internet_gateways,
    ResourceKind.NETWORK: list_networks,
}

# Kinds whose resources live inside a VPC and can be re-queried by VPC id
VPC_SCOPED_KINDS = tuple(
    kind
    for kind in KIND_QUERIES
    if kind
    not in (ResourceKind.NETWORK, ResourceKind.BLOCK_VOLUME, ResourceKind.ELASTIC_IP)
)
