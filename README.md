# graphquery

A small HTTP server. It keeps one weighted, directed graph in memory and
answers two kinds of question about it:

- the cheapest simple path between two nodes;
- the cheapest simple path between two nodes whose total weight is a prime number.

It uses only the standard library.

## Installing

```
pip install .
```

## Running the server

```
graphquery [--host HOST] [--port PORT] [--workers N]
```

- `--host` – address to bind, default `0.0.0.0`;
- `--port` – port to listen on, default `8080`;
- `--workers` – threads used for path searches, default the number of CPUs.

The server prints the available endpoints and runs until interrupted with
Ctrl+C. Request activity is logged to standard error.

## Graph format

A graph is plain text, one definition per line:

```
* a
* b
* c
- a b 3
- b c 4
- a c 9
```

`* name` declares a node. `- source target weight` declares a directed edge
with a non-negative integer weight; a missing or unreadable weight counts as
`0`. Nodes that an edge names are created if they were not declared. Blank
lines, edge lines with fewer than two names, and any other lines are ignored.
Loading a graph replaces the previous one.

## Endpoints

| Method | Path             | Body           |
|--------|------------------|----------------|
| GET    | `/heartbeat`     | –              |
| GET    | `/graph_info`    | –              |
| POST   | `/initialize`    | the graph text |
| POST   | `/shortest_path` | `start end`    |
| POST   | `/prime_path`    | `start end`    |

Send `Accept: application/json` to get JSON replies instead of plain text.

- `/heartbeat` reports status, uptime and whether each path service is
  available or degraded.
- `/graph_info` writes the node, edge and weight listing to the server's
  standard output and replies with a short confirmation.
- `/initialize` loads a graph. The body must not be empty, must be at most
  10 MB, must contain at least one line starting with `*` or `-`, and, if a
  `Content-Type` is given, it must be `text/plain` or
  `application/octet-stream`. The characters `< > & ' " /` are removed before
  parsing. The reply gives the node and edge counts, also in the
  `X-Graph-Nodes` and `X-Graph-Edges` headers.
- `/shortest_path` and `/prime_path` take the first two whitespace-separated
  words of the body (at most 5 MB) as start and end node.

For the graph above, `POST /shortest_path` with the body `a c` answers

```
a -{3}-> b -{4}-> c = 7
```

and `POST /prime_path` with the body `a c` answers

```
a -{3}-> b -{4}-> c = 7 is prime!
```

If no such path exists, or either node is unknown, the reply is
`No path from <start> to <end>` or `No prime path from <start> to <end>`.

### Limits and errors

Each client address may make 10 requests a minute across all endpoints; more
are answered with `429 Too Many Requests`. After 5 failed queries in a row a
path service answers `503 Service Unavailable` for 30 seconds. Every reply
with a status of 400 or above carries a standard message for that status, an
`X-Request-ID` header and no-cache headers.

## Using the library

`graphquery.graph.Graph` can be used directly:

```python
from graphquery.graph import Graph

with Graph(max_workers=4) as graph:
    graph.parse("- a b 3\n- b c 4\n- a c 9\n")
    print(graph.shortest_path("a", "c"))        # a -{3}-> b -{4}-> c = 7
    print(graph.prime_path_parallel("a", "c"))  # a -{3}-> b -{4}-> c = 7 is prime!
    print(graph.describe())
```

`shortest_path` and `prime_path` search on the calling thread;
`shortest_path_parallel` and `prime_path_parallel` spread the search over a
thread pool, which `close()` (or leaving the `with` block) shuts down.
`prime_path` returns the first prime-weight path found breadth-first, while
`prime_path_parallel` returns the lowest prime-weight path.

`graphquery.resilience` provides `sanitize_input`, `should_compress_response`,
`CircuitBreaker` and `RateLimiter`, each taking an optional clock for testing.

The service can be driven without a network socket through
`graphquery.server.GraphQueryService`:

```python
from graphquery.graph import Graph
from graphquery.server import GraphQueryService

service = GraphQueryService(Graph(max_workers=2))
reply = service.handle("POST", "/initialize", {}, b"- a b 2\n", "127.0.0.1")
print(reply.status, reply.body)
```

`graphquery.server.make_server(host, port, service)` wraps a service in a
threaded HTTP server.

## What it does not do

The graph lives only in memory and is lost when the server stops; there is no
storage. The server speaks plain HTTP only, with no TLS. Responses are never
compressed: large bodies only get an `X-Compression-Applied: would-be-gzip`
header.