"""Tests for search service models and ARM body decoding."""

from __future__ import annotations

import pytest

from search_mgmt.core.exceptions import ContractError
from search_mgmt.models._validation import ModelValidationError
from search_mgmt.models.provisioning import ProvisioningState
from search_mgmt.models.search_service import (
    AdminKeyKind,
    AdminKeys,
    ProviderRegistration,
    QueryKey,
    SearchService,
    SearchServiceSpec,
    scale_properties,
    validate_service_name,
)

ARM_SERVICE = {
    "id": "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Search/searchServices/sample1",
    "name": "sample1",
    "type": "Microsoft.Search/searchServices",
    "location": "West US",
    "tags": {"env": "dev"},
    "sku": {"name": "free"},
    "properties": {
        "replicaCount": 1,
        "partitionCount": 1,
        "status": "running",
        "provisioningState": "succeeded",
        "hostingMode": "default",
    },
}


class TestServiceName:
    """Search service naming rules."""

    @pytest.mark.parametrize("name", ["ab", "sample123", "my-search-1", "a" * 60])
    def test_valid_names(self, name: str) -> None:
        assert validate_service_name(name) == name

    @pytest.mark.parametrize(
        "name", ["a", "a" * 61, "Sample", "-abc", "abc-", "a--b", "my_search", "my search"]
    )
    def test_invalid_names(self, name: str) -> None:
        with pytest.raises(ModelValidationError):
            validate_service_name(name)


class TestSearchServiceSpec:
    """Create-request model validation and ARM body."""

    def test_defaults_to_free_single_replica(self) -> None:
        spec = SearchServiceSpec(location="West US")
        assert spec.sku == "free"
        assert spec.replica_count == 1
        assert spec.partition_count == 1

    def test_to_arm_body(self) -> None:
        spec = SearchServiceSpec(
            location="West US", sku="standard", replica_count=2, tags={"team": "search"}
        )
        assert spec.to_arm_body() == {
            "type": "Microsoft.Search/searchServices",
            "location": "West US",
            "sku": {"name": "standard"},
            "properties": {"replicaCount": 2, "partitionCount": 1, "hostingMode": "default"},
            "tags": {"team": "search"},
        }

    def test_body_omits_empty_tags(self) -> None:
        assert "tags" not in SearchServiceSpec(location="West US").to_arm_body()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"location": ""},
            {"location": "West US", "sku": "premium"},
            {"location": "West US", "replica_count": 0},
            {"location": "West US", "replica_count": 13},
            {"location": "West US", "partition_count": 5},
            {"location": "West US", "hosting_mode": "shared"},
        ],
    )
    def test_rejects_invalid_values(self, kwargs: dict[str, object]) -> None:
        with pytest.raises(ModelValidationError):
            SearchServiceSpec(**kwargs)  # type: ignore[arg-type]


class TestSearchServiceFromArm:
    """Decoding of ARM search service bodies."""

    def test_decodes_full_body(self) -> None:
        service = SearchService.from_arm(ARM_SERVICE)
        assert service.name == "sample1"
        assert service.location == "West US"
        assert service.sku == "free"
        assert service.replica_count == 1
        assert service.status == "running"
        assert service.provisioning_state is ProvisioningState.SUCCEEDED
        assert service.tags == {"env": "dev"}

    def test_missing_provisioning_state_is_unknown(self) -> None:
        service = SearchService.from_arm({"name": "sample1", "properties": {}})
        assert service.provisioning_state is ProvisioningState.UNKNOWN

    def test_missing_name_raises_contract_error(self) -> None:
        with pytest.raises(ContractError):
            SearchService.from_arm({"properties": {"provisioningState": "succeeded"}})

    def test_non_object_raises_contract_error(self) -> None:
        with pytest.raises(ContractError):
            SearchService.from_arm([])  # type: ignore[arg-type]

    def test_to_dict(self) -> None:
        data = SearchService.from_arm(ARM_SERVICE).to_dict()
        assert data["name"] == "sample1"
        assert data["provisioning_state"] == "succeeded"


class TestScaleProperties:
    """Validation of scale requests."""

    def test_replicas_only(self) -> None:
        assert scale_properties(replica_count=2) == {"replicaCount": 2}

    def test_both_counts(self) -> None:
        assert scale_properties(3, 2) == {"replicaCount": 3, "partitionCount": 2}

    def test_requires_a_count(self) -> None:
        with pytest.raises(ModelValidationError):
            scale_properties()

    def test_rejects_invalid_partition_count(self) -> None:
        with pytest.raises(ModelValidationError):
            scale_properties(partition_count=5)


class TestKeys:
    """Admin and query key models."""

    def test_admin_kind_parse(self) -> None:
        assert AdminKeyKind.parse("Secondary") is AdminKeyKind.SECONDARY

    def test_admin_kind_parse_rejects_unknown(self) -> None:
        with pytest.raises(ModelValidationError):
            AdminKeyKind.parse("tertiary")

    def test_admin_keys_from_arm(self) -> None:
        keys = AdminKeys.from_arm({"primaryKey": "p", "secondaryKey": "s"})
        assert keys.to_dict() == {"primary_key": "p", "secondary_key": "s"}

    def test_admin_keys_hidden_from_repr(self) -> None:
        keys = AdminKeys(primary_key="p-secret", secondary_key="s-secret")
        assert "secret" not in repr(keys)

    def test_admin_keys_missing_field(self) -> None:
        with pytest.raises(ContractError):
            AdminKeys.from_arm({"primaryKey": "p"})

    def test_query_key_from_arm(self) -> None:
        key = QueryKey.from_arm({"name": "myQueryKey", "key": "abc"})
        assert key.name == "myQueryKey"
        assert key.key == "abc"
        assert "abc" not in repr(key)

    def test_query_key_without_name(self) -> None:
        assert QueryKey.from_arm({"name": None, "key": "abc"}).name == ""


class TestProviderRegistration:
    """Resource provider registration decoding."""

    def test_from_arm(self) -> None:
        registration = ProviderRegistration.from_arm(
            {"namespace": "Microsoft.Search", "registrationState": "Registering"}
        )
        assert registration.state is ProvisioningState.IN_PROGRESS
        assert registration.to_dict()["state"] == "in_progress"

    def test_missing_namespace(self) -> None:
        with pytest.raises(ContractError):
            ProviderRegistration.from_arm({"registrationState": "Registered"})
