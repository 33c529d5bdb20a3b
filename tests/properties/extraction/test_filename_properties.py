from hypothesis import assume, given, strategies as st

from openapi_extractor.extraction import v3_filename
from openapi_extractor.registrar import GroupVersion

dns_groups = st.from_regex(
    r"[a-z0-9]([a-z0-9-]{0,10}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,10}[a-z0-9])?){0,3}",
    fullmatch=True,
)
versions = st.from_regex(r"v[0-9]{1,2}((alpha|beta)[0-9]{1,2})?", fullmatch=True)
group_versions = st.builds(GroupVersion, group=dns_groups, version=versions)


@given(gv=group_versions)
def test_v3_filename_is_deterministic(gv: GroupVersion) -> None:
    assert v3_filename(gv) == v3_filename(GroupVersion(gv.group, gv.version))


@given(gv=group_versions)
def test_v3_filename_shape(gv: GroupVersion) -> None:
    name = v3_filename(gv)

    assert name.startswith("apis__")
    assert name.endswith("_openapi.json")
    assert "/" not in name


@given(first=group_versions, second=group_versions)
def test_v3_filename_is_injective(first: GroupVersion, second: GroupVersion) -> None:
    assume(first != second)

    assert v3_filename(first) != v3_filename(second)
