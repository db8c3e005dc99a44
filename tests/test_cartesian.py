from actlocal.cartesian import cartesian_product


def test_cartesian_product():
    output = cartesian_product(
        {"foo": [1, 2, 3, 4], "bar": ["a", "b", "c"], "baz": [False, True]}
    )
    assert len(output) == 24
    for combo in output:
        assert len(combo) == 3
        assert set(combo) == {"foo", "bar", "baz"}


def test_cartesian_product_is_unique():
    output = cartesian_product(
        {"foo": [1, 2, 3, 4], "bar": ["a", "b", "c"], "baz": [False, True]}
    )
    keys = {(c["foo"], c["bar"], c["baz"]) for c in output}
    assert len(keys) == 24


def test_cartesian_product_with_empty_list():
    output = cartesian_product({"foo": [1, 2, 3, 4], "bar": [], "baz": [False, True]})
    assert len(output) == 0


def test_cartesian_product_empty_map():
    assert len(cartesian_product({})) == 0