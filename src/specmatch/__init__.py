"""specmatch -- check frontend, backend, and OpenAPI specs for interface drift.

This package answers one question: do the endpoints, methods, parameters, and
schemas that one side of an HTTP interface relies on actually exist on the
other side?  Either side can be raw source code or a formal OpenAPI 3.x /
Swagger 2.0 document.

Typical workflow::

    specmatch spec validate openapi.yaml
    specmatch check src/api/client.ts --spec openapi.yaml
    specmatch diff --frontend web/src --backend server/app

Library usage::

    from specmatch.engine import InterfaceEngine

    engine = InterfaceEngine()
    result = engine.analyze_differences(frontend_text, backend_text)
    print(result.is_compatible, result.summary.compatibility_score)

Modules:
    app: Typer application and CLI entry point.
    engine: High-level facade tying the normalizer, extractor, and checker together.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration with project-local overrides.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
