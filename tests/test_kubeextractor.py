from datetime import datetime, timezone

import pytest

from sloop.kubeextractor import (
    NAMESPACE_KIND,
    NODE_KIND,
    ZERO_TIME,
    KubeInvolvedObject,
    KubeMetadata,
    KubeMetadataOwnerReference,
    extract_event_info,
    extract_involved_object,
    extract_metadata,
    get_involved_object_name_from_event_name,
    is_clusters_scoped_resource,
)


def test_extract_metadata_output_correct():
    payload = """{"metadata":
        {
            "name":"name1",
            "namespace":"namespace1",
            "selfLink":"link1",
            "uid":"uid1",
            "resourceVersion":"123",
            "creationTimestamp":"2019-07-12T20:12:12Z",
            "ownerReferences": [
             {
               "kind": "Deployment",
               "name": "deployment1",
               "uid": "uid0"
             }]
        }
    }"""
    expected = KubeMetadata(
        name="name1",
        namespace="namespace1",
        uid="uid1",
        self_link="link1",
        resource_version="123",
        creation_timestamp="2019-07-12T20:12:12Z",
        owner_references=(
            KubeMetadataOwnerReference(kind="Deployment", name="deployment1", uid="uid0"),
        ),
    )
    assert extract_metadata(payload) == expected


def test_extract_metadata_missing_fields_are_ignored():
    payload = '{"metadata":{"name":"name1","uid":"uid1","resourceVersion":"123","creationTimestamp":"2019-07-12T20:12:12Z"}}'
    expected = KubeMetadata(
        name="name1",
        namespace="",
        uid="uid1",
        self_link="",
        resource_version="123",
        creation_timestamp="2019-07-12T20:12:12Z",
    )
    assert extract_metadata(payload) == expected


def test_extract_metadata_invalid_payload_raises():
    payload = '{"metadata":{"name":"name1","namespace":"namespace1","selfLink":"link1"}'
    with pytest.raises(ValueError):
        extract_metadata(payload)


def test_extract_metadata_payload_has_additional_fields():
    payload = (
        '{"metadata":{"name":"name1","namespace":"namespace1","selfLink":"link1","uid":"uid1",'
        '"resourceVersion":"123","creationTimestamp":"2019-07-12T20:12:12Z"},'
        '"meta2":{"kind":"Pod","namespace":"namespace2"}}'
    )
    expected = KubeMetadata(
        name="name1",
        namespace="namespace1",
        uid="uid1",
        self_link="link1",
        resource_version="123",
        creation_timestamp="2019-07-12T20:12:12Z",
    )
    assert extract_metadata(payload) == expected


def test_extract_metadata_wrong_type_raises():
    with pytest.raises(ValueError):
        extract_metadata('{"metadata":{"name":5}}')


def test_extract_metadata_field_names_case_insensitive():
    assert extract_metadata('{"Metadata":{"Name":"n"}}').name == "n"


def test_extract_involved_object_output_correct():
    payload = '{"involvedObject":{"kind":"ReplicaSet","namespace":"namespace1","name":"name1","uid":"uid1"}}'
    expected = KubeInvolvedObject(
        kind="ReplicaSet", name="name1", namespace="namespace1", uid="uid1"
    )
    assert extract_involved_object(payload) == expected


def test_extract_involved_object_invalid_payload_raises():
    payload = '{"involvedObject":{"name":"name1","namespace":"namespace1","selfLink":"link1"}'
    with pytest.raises(ValueError):
        extract_involved_object(payload)


def test_extract_involved_object_additional_fields():
    payload = (
        '{"metadata":{"name":"name2","namespace":"namespace2","uid":"uid2"},'
        '"involvedObject":{"kind":"Pod","name":"name1","namespace":"namespace1","uid":"uid1"}}'
    )
    expected = KubeInvolvedObject(kind="Pod", name="name1", namespace="namespace1", uid="uid1")
    assert extract_involved_object(payload) == expected


def test_extract_event_info_output_correct():
    payload = (
        '{"reason":"failed","firstTimestamp": "2019-08-29T21:24:55Z",'
        '"lastTimestamp": "2019-08-30T16:47:45Z","count": 13954}'
    )
    result = extract_event_info(payload)
    assert result.reason == "failed"
    assert result.first_timestamp == datetime(2019, 8, 29, 21, 24, 55, tzinfo=timezone.utc)
    assert result.last_timestamp == datetime(2019, 8, 30, 16, 47, 45, tzinfo=timezone.utc)
    assert result.count == 13954


def test_extract_event_info_missing_fields_are_ignored():
    payload = '{"metadata":{"name":"name1","uid":"uid1","resourceVersion":"123","creationTimestamp":"2019-07-12T20:12:12Z"}}'
    result = extract_event_info(payload)
    assert result.reason == ""
    assert result.first_timestamp == ZERO_TIME
    assert result.last_timestamp == ZERO_TIME
    assert result.count == 0


def test_extract_event_info_bad_last_timestamp_resets_first():
    payload = '{"firstTimestamp":"2019-08-29T21:24:55Z","lastTimestamp":"bogus","type":"Warning"}'
    result = extract_event_info(payload)
    assert result.first_timestamp == ZERO_TIME
    assert result.last_timestamp == ZERO_TIME
    assert result.type == "Warning"


def test_extract_event_info_offset_and_fraction():
    payload = '{"firstTimestamp":"2019-08-29T21:24:55.5+02:00","lastTimestamp":"2019-08-29T21:24:56Z"}'
    result = extract_event_info(payload)
    assert result.first_timestamp == datetime(2019, 8, 29, 19, 24, 55, 500000, tzinfo=timezone.utc)


def test_get_involved_object_name_invalid():
    with pytest.raises(ValueError):
        get_involved_object_name_from_event_name("xxx")


def test_get_involved_object_name_valid():
    assert get_involved_object_name_from_event_name("xxx.abc") == "xxx"


def test_get_involved_object_name_host_name():
    assert (
        get_involved_object_name_from_event_name("somehost.somedomain.com.abc")
        == "somehost.somedomain.com"
    )


def test_is_clusters_scoped_resource_true():
    assert is_clusters_scoped_resource(NODE_KIND) is True
    assert is_clusters_scoped_resource(NAMESPACE_KIND) is True


def test_is_clusters_scoped_resource_false():
    assert is_clusters_scoped_resource("someKind") is False