"""specrun -- spec-driven executor for JSON:API-style REST services.

Given an OpenAPI document, specrun turns an operation identifier plus runtime
parameters into a concrete, authenticated HTTP request, executes it (directly
or through cursor-based pagination), and extracts the result.

Typical workflow::

    index = load_spec_index("openapi.json")
    op = index.resolve_operation(operation_id="apps_getCollection")
    plan = build_call_plan(op)

    async with AuthTransport(settings) as transport:
        result = await paginate_get(plan, api_root, performer=transport, limit=50)

Modules:
    models: Pydantic models shared across the entire package.
    exceptions: Exception hierarchy with ``kind`` and exit-code mapping.
    exit_codes: Numeric exit codes for each error kind.
    config: Explicit settings construction (no file or env access).
    planner: Call-plan derivation from operation descriptors.
    pointer: RFC 6901 JSON pointer selection.
    inputs: ``key=value`` and request body input parsing.
    validation: Confirmation guard and preflight parameter checks.
    fixtures: Record/replay of request/response pairs.
    output: stderr diagnostics with Rich support.
"""

__version__ = "0.1.0"
