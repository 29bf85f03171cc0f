"""
Predefined global names for the browser, node and es2021 environments.

Used by no-undef (and no-obj-calls) so that references to host objects are not
reported as undeclared identifiers.
"""

from typing import Dict, FrozenSet, Iterable

BUILTIN_GLOBALS: FrozenSet[str] = frozenset({
    # value properties
    "globalThis", "Infinity", "NaN", "undefined",
    # functions
    "eval", "isFinite", "isNaN", "parseFloat", "parseInt",
    "decodeURI", "decodeURIComponent", "encodeURI", "encodeURIComponent",
    "escape", "unescape",
    # constructors and namespaces
    "Object", "Function", "Boolean", "Symbol", "Error", "AggregateError",
    "EvalError", "RangeError", "ReferenceError", "SyntaxError", "TypeError", "URIError",
    "Number", "BigInt", "Math", "Date", "String", "RegExp",
    "Array", "Int8Array", "Uint8Array", "Uint8ClampedArray", "Int16Array", "Uint16Array",
    "Int32Array", "Uint32Array", "Float32Array", "Float64Array", "BigInt64Array", "BigUint64Array",
    "Map", "Set", "WeakMap", "WeakSet", "WeakRef", "FinalizationRegistry",
    "ArrayBuffer", "SharedArrayBuffer", "Atomics", "DataView", "JSON",
    "Promise", "Proxy", "Reflect", "Intl",
})

NODE_GLOBALS: FrozenSet[str] = frozenset({
    "__dirname", "__filename", "require", "module", "exports",
    "Buffer", "process", "global", "console",
    "setTimeout", "clearTimeout", "setInterval", "clearInterval",
    "setImmediate", "clearImmediate", "queueMicrotask",
    "URL", "URLSearchParams", "TextEncoder", "TextDecoder",
    "AbortController", "AbortSignal", "Event", "EventTarget",
    "structuredClone", "fetch", "Headers", "Request", "Response", "FormData", "Blob",
})

BROWSER_GLOBALS: FrozenSet[str] = frozenset({
    "window", "self", "document", "navigator", "location", "history", "screen",
    "console", "alert", "confirm", "prompt", "open", "close", "print",
    "localStorage", "sessionStorage", "indexedDB", "caches", "crypto", "performance",
    "fetch", "Headers", "Request", "Response", "FormData", "Blob", "File", "FileReader",
    "URL", "URLSearchParams", "WebSocket", "Worker", "XMLHttpRequest", "EventSource",
    "setTimeout", "clearTimeout", "setInterval", "clearInterval", "queueMicrotask",
    "requestAnimationFrame", "cancelAnimationFrame", "requestIdleCallback", "cancelIdleCallback",
    "addEventListener", "removeEventListener", "dispatchEvent",
    "Event", "CustomEvent", "EventTarget", "KeyboardEvent", "MouseEvent",
    "Node", "Element", "HTMLElement", "HTMLInputElement", "HTMLCanvasElement", "DocumentFragment",
    "MutationObserver", "IntersectionObserver", "ResizeObserver",
    "Image", "Audio", "Option", "AbortController", "AbortSignal",
    "TextEncoder", "TextDecoder", "atob", "btoa", "getComputedStyle", "matchMedia",
    "innerWidth", "innerHeight", "devicePixelRatio", "structuredClone",
})

ENVIRONMENT_GLOBALS: Dict[str, FrozenSet[str]] = {
    "es2021": BUILTIN_GLOBALS,
    "node": NODE_GLOBALS,
    "browser": BROWSER_GLOBALS,
}

# Globals that are objects, not functions (no-obj-calls)
NON_CALLABLE_GLOBALS: FrozenSet[str] = frozenset({"Math", "JSON", "Reflect", "Atomics", "Intl"})


def globals_for(environments: Iterable[str]) -> FrozenSet[str]:
    """Union of the predefined globals of the named environments."""
    names = set(BUILTIN_GLOBALS)
    for env in environments:
        names.update(ENVIRONMENT_GLOBALS.get(env, frozenset()))
    return frozenset(names)
