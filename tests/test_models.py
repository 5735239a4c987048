from otelcol_upgrade.models import (
    CollectorSpec,
    DNSPolicy,
    Event,
    EventRecorder,
    OpenTelemetryCollector,
    Volume,
    dns_policy,
)


def test_dns_policy_defaults_to_cluster_first():
    assert dns_policy(OpenTelemetryCollector()) is DNSPolicy.CLUSTER_FIRST


def test_dns_policy_with_host_network():
    otelcol = OpenTelemetryCollector(spec=CollectorSpec(host_network=True))
    assert dns_policy(otelcol) is DNSPolicy.CLUSTER_FIRST_WITH_HOST_NET


def test_copy_is_equal_but_independent():
    original = OpenTelemetryCollector(
        name="my-instance",
        namespace="default",
        labels={"app.kubernetes.io/managed-by": "opentelemetry-operator"},
        spec=CollectorSpec(args={"--hii": "hello"}, volumes=[Volume(name="my-volume")]),
    )
    clone = original.copy()
    assert clone == original

    clone.spec.args["--other"] = "x"
    clone.labels.clear()
    clone.spec.volumes.append(Volume(name="extra"))
    clone.status.version = "0.43.0"

    assert original.spec.args == {"--hii": "hello"}
    assert original.labels == {"app.kubernetes.io/managed-by": "opentelemetry-operator"}
    assert [v.name for v in original.spec.volumes] == ["my-volume"]
    assert original.status.version == ""


def test_event_recorder_keeps_events_in_order():
    recorder = EventRecorder()
    target = OpenTelemetryCollector(name="my-instance")
    recorder.event(target, "Normal", "Upgrade", "first")
    recorder.event(target, "Normal", "Upgrade", "second")
    assert recorder.events == [
        Event(target, "Normal", "Upgrade", "first"),
        Event(target, "Normal", "Upgrade", "second"),
    ]


def test_event_recorder_starts_empty():
    assert EventRecorder().events == []