import pytest

from valfleet.errors import ConfigurationError
from valfleet.hosts.models import Host
from valfleet.hosts.resolver import elect_bootstrap, resolve_hosts


def test_positions_follow_argument_order():
    hosts = resolve_hosts(["10.0.0.1", "node-b.example", "10.0.0.3"])
    assert [(h.address, h.position) for h in hosts] == [
        ("10.0.0.1", 1),
        ("node-b.example", 2),
        ("10.0.0.3", 3),
    ]


def test_addresses_are_stripped():
    assert resolve_hosts(["  a  "]) == [Host("a", 1)]


def test_empty_list_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        resolve_hosts([])
    assert resolve_hosts([], require=False) == []


def test_blank_entry_is_rejected():
    with pytest.raises(ConfigurationError, match="position 2"):
        resolve_hosts(["a", " ", "c"])


def test_bootstrap_is_first_host_and_follows_order():
    abc = resolve_hosts(["A", "B", "C"])
    assert elect_bootstrap(abc) == Host("A", 1)

    cab = resolve_hosts(["C", "A", "B"])
    assert elect_bootstrap(cab).address == "C"


def test_bootstrap_of_nothing_is_none():
    assert elect_bootstrap([]) is None
