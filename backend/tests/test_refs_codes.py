import uuid
from types import SimpleNamespace

from glowboard.services.codes import generate_code, normalize_code, is_well_formed, ALPHABET
from glowboard.services.refs import Resolved, Unresolved, make_ref, ref_id, resolved_value


def test_ref_id_for_both_variants():
    uid = uuid.uuid4()
    creator = SimpleNamespace(id=uid, username="sunny")

    loaded = make_ref(uid, creator)
    bare = make_ref(uid)
    assert isinstance(loaded, Resolved) and isinstance(bare, Unresolved)
    assert ref_id(loaded) == ref_id(bare) == uid
    assert resolved_value(loaded) is creator
    assert resolved_value(bare) is None


def test_mismatched_value_stays_unresolved():
    ref = make_ref(uuid.uuid4(), SimpleNamespace(id=uuid.uuid4()))
    assert isinstance(ref, Unresolved)


def test_generated_codes_well_formed():
    for length in (8, 10):
        code = generate_code(length)
        assert len(code) == length
        assert set(code) <= set(ALPHABET)
        assert is_well_formed(code)
    assert not is_well_formed("ABC123")
    assert normalize_code("  ab12cd34 ") == "AB12CD34"
