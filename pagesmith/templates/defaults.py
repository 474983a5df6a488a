"""
Built-in template fragments and error pages.

These ship inside the package so they are available without any
filesystem access.
"""

DEBUG_PARTIAL_NAME = "pagesmith/debug"

DEBUG_PARTIAL = """<div class="pagesmith-debug">
<h4>Pagesmith debug</h4>
<pre>{{.}}</pre>
</div>
"""

DEFAULT_404_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Page not found</title></head>
<body>
<h1>404</h1>
<p>The page you are looking for does not exist.</p>
</body>
</html>
"""

DEFAULT_500_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Internal server error</title></head>
<body>
<h1>500</h1>
<p>Something went wrong while building this page.</p>
</body>
</html>
"""

BUILTIN_PARTIALS: dict[str, str] = {
    DEBUG_PARTIAL_NAME: DEBUG_PARTIAL,
}
