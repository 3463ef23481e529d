# foyle

Building blocks for an AI assistant that works inside notebooks.

## Modules

- `foyle.models`: dataclasses for blocks, docs, notebook cells, examples,
  sessions and log events, with the enums `BlockKind`, `CellKind`,
  `LogEventType` and `ExecuteStatus`. `Example.to_bytes()` and
  `Example.from_bytes(data)` serialize an example as compact JSON.
- `foyle.converters`: `notebook_to_doc`, `cell_to_block`, `blocks_to_cells`,
  `block_to_cell` and the kind and output converters; `get_cell_id` and
  `set_cell_id` read and replace a cell's id in its metadata.
- `foyle.ulid`: `generate_id`, `valid_id`, and `mock_generator` /
  `reset_generator` to pin the generated id in tests.
- `foyle.matchers`: `is_oai_complete`, `is_anthropic_complete`,
  `is_log_event`, `is_llm_usage`, `is_generate` and `is_stream_generate`
  recognise log entries by the name of the function that produced them.
- `foyle.llms`: the abstract `Vectorizer` and `Completer` interfaces,
  `ContextLengthExceededError`, and `vector_to_array`.
- `foyle.oai`: `APIError`, `error_is`, `http_status_code` (which follows the
  exception's cause chain and returns -1 if no `APIError` is found),
  `AzureModelMapper` and `read_api_key`.
- `foyle.logs`: `zap_proto` (a log field holding a dataclass as a JSON
  object), `log_llm_usage`, `LLMUsage` and `build_assertion`.
- `foyle.vscode`: `VscodeCors` to accept origins of the VS Code test web
  server, `WorkbenchConstructionOptions` with `to_json()`, and
  `find_extensions_in_dir`.
- `foyle.webassets`: prepares a directory of VS Code web assets (see below).
- `foyle.learner`: `Learner` turns executed notebook sessions into training
  examples; `session_to_query`, `is_learnable` and `get_last_exec_event`.
- `foyle.in_memory`: `InMemoryExampleDB` retrieves the nearest examples by
  embedding similarity; `sort_indexes` and `initial_number_of_rows`.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Converting notebooks

```python
from foyle.models import Cell, CellKind, Notebook
from foyle.converters import notebook_to_doc, blocks_to_cells

nb = Notebook(cells=[Cell(kind=CellKind.CELL_KIND_CODE, language_id="python",
                          value="print('hi')", metadata={"id": "1234"})])
doc = notebook_to_doc(nb)
print(doc.blocks[0].id)          # 1234
cells = blocks_to_cells(doc.blocks)
```

## Learning and retrieving examples

`Learner(sessions, vectorizer, training_dirs)` takes any object with a
`get(session_id)` method returning a `Session`, and a `Vectorizer`. Its
`reconcile(session_id)` builds an `Example` from the session's last successful
execution, embeds the query and writes `<id>.example.binpb` into each training
directory. `start(post_func)` runs a worker thread fed by `enqueue(session)`;
`shutdown()` waits for it to finish.

`InMemoryExampleDB(vectorizer, training_dirs)` loads every
`*.example.binpb` file in the training directories, keeps the embeddings in a
numpy matrix and answers `get_examples(request, max_results)` by dot-product
similarity, most similar last. `get_example(example_id)` raises `KeyError` for
an unknown id; `start()`, `enqueue_example(path)` and `shutdown()` load new
files in the background.

```python
from foyle.in_memory import initial_number_of_rows

print(initial_number_of_rows(10))   # 6
```

## Preparing VS Code web assets

The `foyle-web-assets` command copies the built VS Code web assets
(`out-vscode-reh-web-min` and `resources`) and the allowed built-in extensions
into an output directory:

```
foyle-web-assets --vscode /path/to/vscode --out /path/to/assets
```

The output directory is removed first if it already exists. Extensions are
kept only if their `package.json` marks them as browser, theme, language or
notebook-renderer extensions; an empty `package.nls.json` is added where one is
missing.

## What the package does not do

- It has no HTTP server; `foyle.vscode` only supplies the CORS check,
  workbench options and extension discovery a server would use.
- It has no client for an LLM or embeddings service. `Vectorizer` and
  `Completer` are interfaces to implement; `foyle.oai` only inspects errors,
  maps Azure deployments and reads API key files.
- It has no session storage; the learner is given the session store.
- Examples are stored as JSON files, not in a database.