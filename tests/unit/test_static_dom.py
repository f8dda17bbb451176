"""Tests for fb_group_media.dom.static."""

import asyncio

import pytest

from fb_group_media.dom.static import StaticNode

HTML = """
<html><body>
<main id="main">
  <ul id="list">
    <li class="item a"><a href="/photo/?fbid=1" role="link">One</a></li>
    <li class="item b"><a href="/photo/?fbid=2" role="link">Two</a></li>
  </ul>
  <p id="solo"><span class="only">Only child</span></p>
  <img id="img" src="//cdn.example/x.jpg" alt="An image">
</main>
</body></html>
"""


@pytest.fixture()
def dom():
    return StaticNode.from_html(HTML, "https://www.facebook.com/groups/1/media")


def run(coro):
    return asyncio.run(coro)


class TestQueries:

    def test_find_one_missing(self, dom):
        assert run(dom.find_one(".nope")) is None

    def test_find_many_order(self, dom):
        links = run(dom.find_many("a"))
        assert [run(l.text()) for l in links] == ["One", "Two"]

    def test_children_skip_text(self, dom):
        ul = run(dom.find_one("#list"))
        assert len(run(ul.children())) == 2

    def test_parent_and_closest(self, dom):
        link = run(dom.find_one("a"))
        assert run(run(link.parent()).attr("class")) == "item a"
        assert run(run(link.closest("ul")).attr("id")) == "list"
        assert run(link.closest("table")) is None

    def test_closest_on_document(self, dom):
        assert run(dom.closest("html")) is None


class TestProps:

    def test_href_is_absolute(self, dom):
        link = run(dom.find_one("a"))
        assert run(link.prop("href")) == "https://www.facebook.com/photo/?fbid=1"
        assert run(link.attr("href")) == "/photo/?fbid=1"

    def test_props_in_order(self, dom):
        img = run(dom.find_one("#img"))
        assert run(img.props(["src", "alt"])) == ["https://cdn.example/x.jpg", "An image"]

    def test_node_name_and_class(self, dom):
        li = run(dom.find_one("li"))
        assert run(li.prop("nodeName")) == "LI"
        assert run(li.prop("className")) == "item a"

    def test_missing_prop(self, dom):
        assert run(run(dom.find_one("li")).prop("duration")) is None

    def test_text_as_lower(self, dom):
        assert run(run(dom.find_one(".only")).text_as_lower()) == "only child"


class TestCommonAncestor:

    def test_between_two_nodes(self, dom):
        a, b = run(dom.find_many("a"))
        assert run(run(a.get_common_ancestor(b)).attr("id")) == "list"

    def test_with_itself(self, dom):
        a = run(dom.find_one("a"))
        assert run(run(a.get_common_ancestor(a)).text()) == "One"

    def test_from_selector(self, dom):
        assert run(run(dom.get_common_ancestor_from_selector('[role="link"]')).attr("id")) == "list"

    def test_from_selector_single_match_is_parent(self, dom):
        assert run(run(dom.get_common_ancestor_from_selector(".only")).attr("id")) == "solo"

    def test_from_selector_no_match(self, dom):
        assert run(dom.get_common_ancestor_from_selector(".missing")) is None
