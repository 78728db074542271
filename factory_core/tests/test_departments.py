import pytest

from factory_core.workflows.departments import DEFAULT_DEPARTMENTS, DepartmentCatalog
from factory_core.workflows.errors import UnknownDepartmentError


def test_default_pipeline_order_and_sequence():
    catalog = DepartmentCatalog(DEFAULT_DEPARTMENTS)

    assert catalog.codes() == [
        "CAD",
        "PRINT",
        "CASTING",
        "FILLING",
        "MEENA",
        "POLISH_1",
        "SETTING",
        "POLISH_2",
        "ADDITIONAL",
    ]
    assert [d.sequence_index for d in catalog.departments()] == list(range(1, 10))
    assert catalog.get("SETTING").display_name == "Stone Setting"


def test_navigation():
    catalog = DepartmentCatalog(DEFAULT_DEPARTMENTS)

    assert catalog.first().code == "CAD"
    assert catalog.next("CAD").code == "PRINT"
    assert catalog.next("ADDITIONAL") is None
    assert catalog.previous("PRINT").code == "CAD"
    assert catalog.previous("CAD") is None
    assert catalog.is_last("ADDITIONAL") is True
    assert catalog.is_last("POLISH_2") is False


def test_codes_are_normalized():
    catalog = DepartmentCatalog([" cad ", "print"])

    assert catalog.codes() == ["CAD", "PRINT"]
    assert "cad" in catalog
    assert catalog.get("Print").sequence_index == 2


def test_unknown_department_is_a_lookup_error():
    catalog = DepartmentCatalog(["CAD", "PRINT"])

    with pytest.raises(UnknownDepartmentError) as exc:
        catalog.next("ENAMEL")

    assert exc.value.code == "INVALID_DEPARTMENT"
    assert isinstance(exc.value, LookupError)


def test_unlisted_department_gets_readable_name():
    catalog = DepartmentCatalog(["CAD", "LASER_ENGRAVING"])
    assert catalog.get("LASER_ENGRAVING").display_name == "Laser Engraving"


@pytest.mark.parametrize("codes", [[], ["", "  "], ["CAD", "PRINT", "cad"]])
def test_rejects_empty_or_duplicate_catalog(codes):
    with pytest.raises(ValueError):
        DepartmentCatalog(codes)
