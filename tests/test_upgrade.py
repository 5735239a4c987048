import pytest

from otelcol_upgrade.models import (
    CollectorSpec,
    CollectorStatus,
    EventRecorder,
    OpenTelemetryCollector,
    UpgradeError,
    UpgradeStrategy,
)
from otelcol_upgrade.upgrade import (
    LATEST,
    CollectorClient,
    VersionUpgrade,
    upgrade_0_2_10,
)

_MANAGED = {"app.kubernetes.io/managed-by": "opentelemetry-operator"}


def make_otelcol(name="my-instance", namespace="default", version="", labels=None, **spec):
    return OpenTelemetryCollector(
        name=name,
        namespace=namespace,
        labels=dict(_MANAGED if labels is None else labels),
        spec=CollectorSpec(**spec),
        status=CollectorStatus(version=version),
    )


def test_upgrade_from_first_version_reaches_latest():
    up = VersionUpgrade(collector_version=str(LATEST))
    res = up.managed_instance(make_otelcol(version="0.0.1"))
    assert res.status.version == "0.43.0"


def test_instance_at_latest_takes_collector_version():
    up = VersionUpgrade(collector_version="0.44.0")
    res = up.managed_instance(make_otelcol(version="0.43.0", config="a: b\n"))
    assert res.status.version == "0.44.0"
    assert res.spec.config == "a: b\n"


def test_upgrade_0_2_10_is_noop():
    otelcol = make_otelcol(version="0.2.0", config="a: b\n")
    assert upgrade_0_2_10(EventRecorder(), otelcol) is otelcol
    assert otelcol.spec.config == "a: b\n"


@pytest.mark.parametrize(
    "strategy, expected",
    [(UpgradeStrategy.AUTOMATIC, str(LATEST)), (UpgradeStrategy.NONE, "0.0.1")],
)
def test_upgrade_all_based_on_upgrade_strategy(strategy, expected):
    client = CollectorClient()
    client.create(make_otelcol(version="0.0.1", upgrade_strategy=strategy))
    up = VersionUpgrade(client=client, recorder=EventRecorder(), collector_version=str(LATEST))

    up.managed_instances()

    assert client.get("default", "my-instance").status.version == expected


def test_upgrade_up_to_latest_known_version():
    up = VersionUpgrade(collector_version="0.10.0")
    res = up.managed_instance(make_otelcol(version="0.8.0"))
    assert res.status.version == "0.10.0"


@pytest.mark.parametrize("version", ["", "100.0.0"])
def test_versions_should_not_be_changed(version):
    up = VersionUpgrade(collector_version=str(LATEST))
    res = up.managed_instance(make_otelcol(version=version))
    assert res.status.version == version


def test_unparseable_version_raises():
    up = VersionUpgrade(collector_version=str(LATEST))
    with pytest.raises(UpgradeError):
        up.managed_instance(make_otelcol(version="unparseable"))


def test_managed_instance_does_not_mutate_input():
    existing = make_otelcol(version="0.9.0", args={"--new-metrics": "true"})
    recorder = EventRecorder()
    res = VersionUpgrade(recorder=recorder).managed_instance(existing)
    assert "--new-metrics" not in res.spec.args
    assert existing.spec.args == {"--new-metrics": "true"}
    assert existing.status.version == "0.9.0"
    assert any("v0.15.0" in event.message for event in recorder.events)


def test_failing_instance_does_not_stop_others():
    client = CollectorClient()
    client.create(make_otelcol(name="broken", version="0.8.0", config="exporters: [a]\n"))
    client.create(make_otelcol(name="fine", version="0.40.0"))
    up = VersionUpgrade(client=client, collector_version="0.44.0")

    up.managed_instances()

    assert client.get("default", "broken").status.version == "0.8.0"
    assert client.get("default", "fine").status.version == "0.44.0"


def test_unmanaged_instances_are_left_alone():
    client = CollectorClient()
    client.create(make_otelcol(name="other", version="0.0.1", labels={}))
    VersionUpgrade(client=client).managed_instances()
    assert client.get("default", "other").status.version == "0.0.1"


def test_managed_instances_without_client_raises():
    with pytest.raises(UpgradeError):
        VersionUpgrade().managed_instances()


def test_client_list_filters_by_labels():
    client = CollectorClient()
    client.create(make_otelcol(name="a"))
    client.create(make_otelcol(name="b", labels={"x": "y"}))
    names = [c.name for c in client.list(dict(_MANAGED))]
    assert names == ["a"]


def test_managed_instances_stores_spec_and_status_changes():
    client = CollectorClient()
    client.create(make_otelcol(version="0.9.0", args={"--new-metrics": "true", "--keep": "1"}))
    up = VersionUpgrade(client=client, collector_version="0.44.0")

    up.managed_instances()

    stored = client.get("default", "my-instance")
    assert stored.spec.args == {"--keep": "1"}
    assert stored.status.version == "0.44.0"


def test_client_create_duplicate_raises():
    client = CollectorClient()
    client.create(make_otelcol())
    with pytest.raises(KeyError):
        client.create(make_otelcol())