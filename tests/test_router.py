import pytest

from lighthouse.router import VIEW_TITLES, View, ViewRouter


def test_router_starts_on_home():
    router = ViewRouter()

    assert router.active is View.HOME


def test_render_shows_exactly_one_view():
    router = ViewRouter()

    for view in View:
        router.navigate(view)
        rendered = router.render()
        visible = [v for v, shown in rendered if shown]
        assert visible == [view]
        assert [v for v, _ in rendered] == list(View)


def test_navigate_accepts_view_names():
    router = ViewRouter()

    assert router.navigate("CHAT") is View.CHAT
    assert router.active is View.CHAT


def test_navigate_to_active_view_is_a_no_op():
    router = ViewRouter(View.MOOD)

    router.navigate(View.MOOD)

    assert router.active is View.MOOD


def test_navigate_rejects_unknown_view():
    router = ViewRouter()

    with pytest.raises(ValueError):
        router.navigate("SETTINGS")
    assert router.active is View.HOME


def test_every_view_has_a_title():
    assert set(VIEW_TITLES) == set(View)
