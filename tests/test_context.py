"""Tests for the build context and runtime type resolution."""

from dataclasses import dataclass

from schemasmith.config import GeneratorSettings
from schemasmith.kernel.context import DelegatingTypeResolver, RelayNodeTypeResolver
from schemasmith.kernel.graph import Namespace, ObjectType
from schemasmith.kernel.relay import node_interface
from schemasmith.kernel.repository import TypeRepository
from schemasmith.kernel.type_info import TypeInfoGenerator


@dataclass
class Vessel:
    name: str


@dataclass
class Tug(Vessel):
    power: int = 0


class Buoy:
    pass


def _repository(*types):
    repo = TypeRepository()
    for graph_type in types:
        repo.complete(graph_type, Namespace.OUTPUT)
    return repo


def test_type_resolver_uses_nearest_mapped_ancestor():
    vessel = ObjectType("Vessel", host_type=Vessel)
    resolver = DelegatingTypeResolver(_repository(vessel), TypeInfoGenerator())

    assert resolver(Vessel("a")) is vessel
    assert resolver(Tug("b")) is vessel
    assert resolver(object()) is None


def test_type_resolver_falls_back_to_type_name():
    buoy = ObjectType("Buoy")  # no host type recorded
    resolver = DelegatingTypeResolver(_repository(buoy), TypeInfoGenerator())
    assert resolver(Buoy()) is buoy


def test_relay_resolver_only_answers_with_node_types():
    node = node_interface()
    vessel = ObjectType("Vessel", host_type=Vessel, interfaces=[node])
    buoy = ObjectType("Buoy", host_type=Buoy)
    resolver = RelayNodeTypeResolver(_repository(vessel, buoy), TypeInfoGenerator())

    assert resolver(Vessel("a")) is vessel
    assert resolver(Buoy()) is None


def test_context_defaults(make_context):
    context = make_context()
    assert context.settings == GeneratorSettings()
    assert context.relay_config.infer_node_interface
    assert not context.node_used
    assert context.get_type("Node") is None


def test_node_interface_installed_once(make_context):
    context = make_context()
    node = context.use_node_interface()

    assert context.node_used
    assert context.get_type("Node") is node
    assert context.use_node_interface() is node
    assert node.type_resolver is not None


def test_supplied_node_interface_is_reused(make_context):
    supplied = node_interface()
    context = make_context(known_types=[supplied])

    assert context.node is supplied
    assert context.use_node_interface() is supplied


def test_value_mapper_published_to_environment(make_context):
    context = make_context()
    value_mapper = context.create_value_mapper({})

    assert context.environment.value_mapper is value_mapper
    assert value_mapper.to_input_value({"name": "Tug"}, Vessel) == Vessel("Tug")


def test_contexts_do_not_share_state(make_context):
    first, second = make_context(), make_context()
    first.register_type_name("Vessel")
    assert not second.is_known_type("Vessel")
    assert first.type_repository is not second.type_repository
