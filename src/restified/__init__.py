"""restified -- runtime state core for an API-testing DSL.

A DSL runner executes a chain of HTTP requests whose URLs, headers and
bodies are templates. This package holds the state those templates are
resolved against:

* :class:`~restified.stores.ScopeStore` -- global and local variables,
  local shadowing global.
* :class:`~restified.builtins.BuiltinFunctionRegistry` -- ``{{$random.uuid}}``,
  ``{{$date.now}}``, ``{{$faker.person.firstName}}`` and other namespaces,
  extensible through the ``restified.builtins`` entry-point group.
* :class:`~restified.templating.TemplateResolver` -- ``{{...}}`` parsing
  and substitution with cycle-safe re-resolution.
* :class:`~restified.cache.ResponseCache` -- bounded FIFO cache of
  responses with TTL expiry and status/URL/time queries.
* :class:`~restified.manager.StorageManager` -- one object wiring all of
  the above for a test session.

Modules:
    app: Typer CLI entry point.
    models: Pydantic models shared across the package.
    config: Configuration precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
