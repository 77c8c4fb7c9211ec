"""Tests for NodeDetails value object."""

import pytest
from stratus.domain.value_objects.node import NodeDetails, is_valid_hostname


class TestNodeDetails:
    def test_default_values(self):
        node = NodeDetails()
        assert node.public_address is None
        assert node.private_address is None
        assert node.agent_running is False
        assert dict(node.metadata) == {}

    def test_frozen(self):
        node = NodeDetails(private_address="10.0.0.1")
        with pytest.raises(AttributeError):
            node.private_address = "10.0.0.2"

    def test_metadata_is_read_only(self):
        node = NodeDetails(metadata={"instance_type": "m5.large"})
        with pytest.raises(TypeError):
            node.metadata["instance_type"] = "t3.micro"

    def test_password_hidden_from_repr(self):
        node = NodeDetails(private_address="10.0.0.1", password="hunter2")
        assert "hunter2" not in repr(node)
        assert "hunter2" not in str(node)

    def test_str(self):
        node = NodeDetails(
            public_address="54.0.0.1", private_address="10.0.0.1", machine_id="i-1"
        )
        assert str(node) == (
            "NodeDetails(id=i-1, public=54.0.0.1, private=10.0.0.1, agent_running=False)"
        )


class TestSelectAddress:
    def test_private(self):
        node = NodeDetails(public_address="54.0.0.1", private_address="10.0.0.1")
        assert node.select_address(connect_to_private_ip=True) == "10.0.0.1"

    def test_public(self):
        node = NodeDetails(public_address="54.0.0.1", private_address="10.0.0.1")
        assert node.select_address(connect_to_private_ip=False) == "54.0.0.1"

    def test_missing_private_is_none(self):
        node = NodeDetails(public_address="54.0.0.1")
        assert node.select_address(connect_to_private_ip=True) is None


class TestNodeValidation:
    def test_invalid_address_rejected(self):
        with pytest.raises(ValueError, match="Invalid node address"):
            NodeDetails(private_address="not a host!")

    def test_invalid_ipv4_octet(self):
        with pytest.raises(ValueError, match="Invalid node address"):
            NodeDetails(public_address="10.0.0.256")

    def test_ipv6_accepted(self):
        node = NodeDetails(private_address="fe80::1")
        assert node.private_address == "fe80::1"

    def test_hostname_accepted(self):
        node = NodeDetails(public_address="web1.example.com")
        assert node.public_address == "web1.example.com"


class TestIsValidHostname:
    @pytest.mark.parametrize(
        "host", ["localhost", "10.0.0.1", "::1", "a-b.example.org"]
    )
    def test_valid(self, host):
        assert is_valid_hostname(host)

    @pytest.mark.parametrize("host", ["", "-bad.com", "bad host", "1.2.3.999"])
    def test_invalid(self, host):
        assert not is_valid_hostname(host)
