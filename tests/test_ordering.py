"""
Ordered element lists.
"""

import math

from strix.metadata import PropertyInfo
from strix.ordering import OrderedElement, build_ordered_element_list


class TestOrderedElement:

    def test_order_from_info(self):
        assert OrderedElement("a", PropertyInfo(order=3)).order == 3

    def test_missing_info_sorts_last(self):
        assert OrderedElement("a").order == math.inf
        assert OrderedElement("a", PropertyInfo()).order == math.inf

    def test_zero_is_a_real_order(self):
        assert OrderedElement("a", PropertyInfo(order=0)).order == 0


class TestBuildOrderedElementList:

    def test_orders_then_names(self):
        infos = {
            "b": PropertyInfo(order=2),
            "c": PropertyInfo(order=3),
            "d": PropertyInfo(order=1),
            "f": PropertyInfo(order=2),
            "g": PropertyInfo(order=2),
            "h": PropertyInfo(order=2),
        }
        names = ["g", "h", "f", "e", "d", "c", "b", "a", "a"]

        elements = build_ordered_element_list(names, infos.get)

        assert [element.name for element in elements] == [
            "d", "b", "f", "g", "h", "c", "a", "a", "e",
        ]

    def test_keeps_metadata(self):
        info = PropertyInfo(order=1)
        elements = build_ordered_element_list(["x", "y"], {"y": info}.get)

        assert elements[0].name == "y"
        assert elements[0].info is info
        assert elements[1].info is None

    def test_empty(self):
        assert build_ordered_element_list([], lambda name: None) == []
