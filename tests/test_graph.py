import io

import pytest

from graphquery.graph import Graph, is_prime, trim

DIAMOND = """
* a
* b
* c
* d
- a b 2
- b d 3
- a c 1
- c d 1
"""


@pytest.fixture
def diamond():
    with Graph(max_workers=4) as graph:
        graph.parse(DIAMOND)
        yield graph


@pytest.mark.parametrize("num", [2, 3, 5, 7, 11, 13, 97, 7919])
def test_is_prime_true(num):
    assert is_prime(num) is True


@pytest.mark.parametrize("num", [0, 1, 4, 9, 15, 25, 100, 7917])
def test_is_prime_false(num):
    assert is_prime(num) is False


def test_trim_strips_only_listed_whitespace():
    assert trim(" \t a b \r\n") == "a b"
    assert trim("\x0bx") == "\x0bx"
    assert trim("   ") == ""


def test_parse_counts(diamond):
    assert diamond.node_count() == 4
    assert diamond.edge_count() == 4


def test_parse_deduplicates_nodes_and_adds_edge_endpoints():
    graph = Graph(max_workers=1)
    graph.parse("* x\n* x\n- x y 4\n- z x 1\n")
    assert graph.node_count() == 3
    assert graph.edge_count() == 2
    assert graph.describe().startswith("Nodes: x y z \n")


def test_parse_replaces_previous_graph(diamond):
    diamond.parse("* only\n")
    assert diamond.node_count() == 1
    assert diamond.edge_count() == 0


def test_parse_ignores_incomplete_edges_and_empty_nodes():
    graph = Graph(max_workers=1)
    graph.parse("*\n- lonely\n# comment\n")
    assert graph.node_count() == 0
    assert graph.edge_count() == 0


def test_missing_weight_is_zero():
    graph = Graph(max_workers=1)
    graph.parse("- p q\n")
    assert "(p --> q: 0)" in graph.describe()


def test_describe_lists_edges_and_weights(diamond):
    text = diamond.describe()
    assert "(a--> b)" in text
    assert "(b --> d: 3)" in text
    assert text.count("\n") == 3


def test_print_info_writes_describe(diamond):
    buffer = io.StringIO()
    diamond.print_info(buffer)
    assert buffer.getvalue() == diamond.describe()


def test_shortest_path(diamond):
    assert diamond.shortest_path("a", "d") == "a -{1}-> c -{1}-> d = 2"


def test_shortest_path_same_node(diamond):
    assert diamond.shortest_path("b", "b") == "b = 0"


def test_shortest_path_unknown_or_unreachable(diamond):
    assert diamond.shortest_path("a", "zz") == "No path from a to zz"
    assert diamond.shortest_path("d", "a") == "No path from d to a"


def test_parallel_shortest_matches_sequential(diamond):
    assert diamond.shortest_path_parallel("a", "d") == diamond.shortest_path("a", "d")
    assert diamond.shortest_path_parallel("d", "a") == "No path from d to a"


def test_prime_path_breadth_first(diamond):
    assert diamond.prime_path("a", "d") == "a -{2}-> b -{3}-> d = 5 is prime!"


def test_prime_path_parallel_picks_lowest_prime(diamond):
    assert diamond.prime_path_parallel("a", "d") == "a -{1}-> c -{1}-> d = 2 is prime!"


def test_prime_path_none(diamond):
    assert diamond.prime_path("a", "a") == "No prime path from a to a"
    assert diamond.prime_path_parallel("a", "a") == "No prime path from a to a"
    assert diamond.prime_path("a", "missing") == "No prime path from a to missing"


def test_prime_results_have_prime_totals(diamond):
    for result in (diamond.prime_path("a", "d"), diamond.prime_path_parallel("a", "d")):
        total = int(result.split(" = ")[1].split()[0])
        assert is_prime(total)


def test_cycles_are_not_followed():
    graph = Graph(max_workers=2)
    graph.parse("- a b 1\n- b a 1\n- b c 4\n")
    try:
        assert graph.shortest_path("a", "c") == graph.shortest_path_parallel("a", "c")
        assert graph.shortest_path("a", "c").endswith("c = 5")
    finally:
        graph.close()


def test_parallel_after_close_raises(diamond):
    diamond.close()
    with pytest.raises(RuntimeError):
        diamond.shortest_path_parallel("a", "d")