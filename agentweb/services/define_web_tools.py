"""Define Web Tools: schemas for fetching pages and searching the web."""

TOOLS_WEB = [
    {
        "name": "WebFetch",
        "description": (
            "Fetch a URL and return its content as text (HTML is converted, "
            "JSON is pretty-printed). http:// is upgraded to https://."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "URL to fetch"},
                "prompt": {
                    "type": "string",
                    "description": "What information to extract from the page",
                },
            },
            "required": ["url", "prompt"],
        },
    },
    {
        "name": "WebSearch",
        "description": "Search the web and return titles, URLs and snippets.",
        "input_schema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query"},
                "limit": {"type": "integer", "description": "Results, default 5, max 10"},
                "site": {
                    "type": "string",
                    "description": "Restrict to one site, e.g. docs.python.org",
                },
            },
            "required": ["query"],
        },
    },
]
