from otelcol_upgrade.collector import (
    CONFIG_MAP_VOLUME_NAME,
    volume_claim_templates,
    volumes,
)
from otelcol_upgrade.models import (
    CollectorSpec,
    OpenTelemetryCollector,
    PersistentVolumeClaim,
    Volume,
)


def test_volume_new_default():
    otelcol = OpenTelemetryCollector()
    result = volumes(otelcol, "my-instance-collector", "collector.yaml")
    assert len(result) == 1
    assert result[0].name == CONFIG_MAP_VOLUME_NAME
    assert result[0].config_map == "my-instance-collector"
    assert result[0].items == (("collector.yaml", "collector.yaml"),)


def test_volume_allows_more_to_be_added():
    otelcol = OpenTelemetryCollector(spec=CollectorSpec(volumes=[Volume(name="my-volume")]))
    result = volumes(otelcol, "my-instance-collector", "collector.yaml")
    assert len(result) == 2
    assert result[0].name == CONFIG_MAP_VOLUME_NAME
    assert result[1].name == "my-volume"


def test_volumes_do_not_change_spec():
    otelcol = OpenTelemetryCollector(spec=CollectorSpec(volumes=[Volume(name="my-volume")]))
    volumes(otelcol, "cm", "collector.yaml").append(Volume(name="extra"))
    assert [v.name for v in otelcol.spec.volumes] == ["my-volume"]


def test_volume_claim_new_default():
    otelcol = OpenTelemetryCollector(spec=CollectorSpec(mode="statefulset"))
    claims = volume_claim_templates(otelcol)
    assert len(claims) == 1
    assert claims[0].name == "default-volume"
    assert claims[0].access_modes[0] == "ReadWriteOnce"
    assert claims[0].requests["storage"] == "50Mi"


def _added_volume():
    return PersistentVolumeClaim(
        name="added-volume",
        access_modes=["ReadWriteOnce"],
        requests={"storage": "1Gi"},
    )


def test_volume_claim_allows_user_to_add():
    otelcol = OpenTelemetryCollector(
        spec=CollectorSpec(mode="statefulset", volume_claim_templates=[_added_volume()])
    )
    claims = volume_claim_templates(otelcol)
    assert len(claims) == 1
    assert claims[0].name == "added-volume"
    assert claims[0].access_modes[0] == "ReadWriteOnce"
    assert claims[0].requests["storage"] == "1Gi"


def test_volume_claim_checks_for_statefulset():
    otelcol = OpenTelemetryCollector(
        spec=CollectorSpec(mode="daemonset", volume_claim_templates=[_added_volume()])
    )
    assert volume_claim_templates(otelcol) == []