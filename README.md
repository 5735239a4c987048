# otelcol-upgrade

Brings OpenTelemetry Collector instance descriptions up to date with the
current collector version, and builds the volume and volume-claim entries
used to run them.

Each collector instance records the version it was last upgraded to. An
upgrade walks through every known release after that version, in order, and
applies that release's change to the instance's arguments and YAML
configuration: removing deprecated processors, renaming fields, moving TLS,
logging and metrics settings to their new places, and so on. Each change is
reported as an event on an `EventRecorder`, which keeps them in its
`events` list.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Upgrading a single instance

```python
from otelcol_upgrade.models import (
    CollectorSpec,
    CollectorStatus,
    EventRecorder,
    OpenTelemetryCollector,
)
from otelcol_upgrade.upgrade import VersionUpgrade

otelcol = OpenTelemetryCollector(
    name="my-instance",
    namespace="default",
    spec=CollectorSpec(
        config="""exporters:
  opencensus:
    compression: "on"
    reconnection_delay: 15
""",
    ),
    status=CollectorStatus(version="0.8.0"),
)

recorder = EventRecorder()
upgrader = VersionUpgrade(collector_version="0.43.0", recorder=recorder)
upgraded = upgrader.managed_instance(otelcol)

print(upgraded.status.version)   # 0.43.0
print(upgraded.spec.config)      # reconnection_delay is gone
print(len(recorder.events))      # events reported by the steps
```

`managed_instance` works on a copy and leaves the instance passed in
unchanged. An instance with no recorded version is taken to be new and is
returned as it is. An instance newer than the latest upgrade step
(`otelcol_upgrade.upgrade.LATEST`) is left alone. Otherwise, after the
steps have run, the status version is set to `collector_version`, which
defaults to the latest step's version. A version that cannot be parsed, or a
configuration that cannot be upgraded, raises `UpgradeError` from
`otelcol_upgrade.models`.

## Upgrading every managed instance

`VersionUpgrade.managed_instances()` lists, through its `client`, the
instances labelled `app.kubernetes.io/managed-by: opentelemetry-operator`,
upgrades each one whose `spec.upgrade_strategy` is not
`UpgradeStrategy.NONE`, and writes the changed ones back with
`client.patch` and `client.patch_status`. Instances that fail to upgrade
or to be written back are skipped. Without a client, or when listing fails,
it raises `UpgradeError`.

`CollectorClient` is an in-memory store of collectors keyed by namespace and
name, with `create`, `get`, `list`, `patch` (metadata and spec, keeping the
stored status) and `patch_status`. Subclass it and override `list`,
`patch` and `patch_status` to connect the upgrader to another store.

## Single steps

The individual steps live in `otelcol_upgrade.steps_early`
(`upgrade_0_9_0`, `upgrade_0_15_0`, `upgrade_0_19_0`, `upgrade_0_24_0`,
`upgrade_0_31_0`) and `otelcol_upgrade.steps_late` (`upgrade_0_36_0`,
`upgrade_0_38_0`, `upgrade_0_39_0`, `upgrade_0_41_0`, `upgrade_0_43_0`);
`otelcol_upgrade.upgrade.upgrade_0_2_10` changes nothing. Each takes an
`EventRecorder` and an `OpenTelemetryCollector`, changes the instance in
place and returns it. The ordered list of steps is
`otelcol_upgrade.upgrade.VERSIONS`.

## Configuration documents

`otelcol_upgrade.yamlconfig` parses and renders the collector's YAML:
`config_from_string` returns a mapping (empty for an empty document) and
raises `ConfigError` on bad input or duplicate keys; `config_to_string`
renders block style with keys in natural order; and
`config_to_string_without_nulls` does the same but drops ` null` markers.

## Volumes

```python
from otelcol_upgrade.collector import volumes, volume_claim_templates

vols = volumes(otelcol, "my-instance-collector", "collector.yaml")
claims = volume_claim_templates(otelcol)
```

`volumes` always begins with the `otc-internal` volume carrying the
collector's config map, followed by any volumes from the spec.
`volume_claim_templates` returns claims only in `statefulset` mode: those
from the spec, or a default `default-volume` claim of 50Mi with
`ReadWriteOnce` access.

`otelcol_upgrade.models.dns_policy` gives `ClusterFirstWithHostNet` for
instances using the host network and `ClusterFirst` otherwise.

## What this package does not do

It does not talk to a Kubernetes cluster, run as a controller, or provide a
command-line tool. Instances are read and written only through a
`CollectorClient`, whose built-in form keeps them in memory, and events stay
in the `EventRecorder` that received them. Volumes and claims are plain
data classes, not full pod manifests.