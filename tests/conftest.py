"""
Pytest configuration and fixtures
"""

import pytest

from cs_ffi_generator.declarations import Class, Enum, Function, Namespace, Struct, Typedef


@pytest.fixture
def temp_dir(tmp_path):
    """Alias for tmp_path used across the test modules"""
    return tmp_path


@pytest.fixture
def simple_declarations():
    """A small C-style API: one struct, one enum, a few functions"""
    return [
        Struct(name="Point", fields=[("x", "int"), ("y", "int")], documentation="A 2D point"),
        Enum(name="Status", values=[("OK", 0), ("ERROR", 1), ("PENDING", 2)]),
        Function(name="add", return_type="int", parameters=[("a", "int"), ("b", "int")],
                 documentation="Adds two integers"),
        Function(name="get_data", return_type="void*"),
        Function(name="get_name", return_type="const char*"),
        Function(name="set_name", return_type="void", parameters=[("name", "const char*")]),
    ]


@pytest.fixture
def linked_list_declarations():
    """Self-referential struct, as in a doubly linked list"""
    return [
        Struct(name="Node", fields=[("next", "Node*"), ("prev", "struct Node *"), ("value", "int32_t")]),
        Function(name="node_push", return_type="Node*", parameters=[("head", "Node*"), ("value", "int32_t")]),
    ]


@pytest.fixture
def callback_declarations():
    """Function pointers in parameters, return types and fields"""
    return [
        Struct(name="EventHandler", fields=[
            ("on_event", "void (*)(int, void*)"),
            ("user_data", "void*"),
        ]),
        Function(name="register_callback", return_type="int", parameters=[
            ("callback", "int (*)(const char*, int)"),
            ("user_data", "void*"),
        ]),
        Function(name="get_handler", return_type="void (*)(int)"),
    ]


@pytest.fixture
def nested_declarations():
    """Namespaces nested two deep, with a class and a typedef"""
    return [
        Namespace(name="outer", declarations=[
            Function(name="outer_init", return_type="void"),
            Typedef(name="Handle", underlying_type="void*"),
            Namespace(name="inner", declarations=[
                Struct(name="Config", fields=[("width", "int"), ("height", "int")]),
                Class(
                    name="Counter",
                    methods=[
                        Function(name="increment", return_type="int", parameters=[("step", "int")]),
                        Function(name="instances", return_type="int", is_static=True),
                        Function(name="counter_create", return_type="Counter*"),
                    ],
                    fields=[("count", "int")],
                ),
            ]),
        ]),
        Enum(name="Flags", values=[("A", 1), ("B", 2), ("C", 4)]),
    ]
