import functools
import inspect
import logging

from quire.build import Builder
from quire.config import SiteConfig
from quire.exceptions import QuireError
from quire.markdown import HIGHLIGHT_STYLESHEET, highlight_css

from quart import Quart, Response, send_file, websocket
from watchfiles import awatch

logger = logging.getLogger(__name__)

RELOAD_SCRIPT = """<script>
(() => {
  const socket = new WebSocket(`ws://${location.host}/ws`);
  socket.addEventListener("message", (event) => {
    if (event.data === "reload") location.reload();
  });
})();
</script>"""


def inject_js_reloader(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        html = await func(*args, **kwargs)
        if isinstance(html, str):
            html += RELOAD_SCRIPT
        return html

    return wrapper


def route(*args, **kwargs):
    # Stackable, a view may answer on several rules.
    def decorator(func):
        func.__dict__.setdefault("_routes", []).append((args, kwargs))
        return func

    return decorator


def ws(*args, **kwargs):
    def decorator(func):
        func._websocket_args = args
        func._websocket_kwargs = kwargs
        return func

    return decorator


class Server:
    def __init__(self, config: SiteConfig, host="0.0.0.0", port=5000, include_drafts=False):
        self.config = config
        self.host = host
        self.port = int(port)

        self.app = Quart(__name__)

        self.builder = Builder(
            config,
            minified=False,
            live=True,
            include_drafts=include_drafts,
        )

        self.register_views()

    def register_views(self):
        for attr in dir(self):
            method = getattr(self, attr)
            if not inspect.ismethod(method):
                continue

            for args, kwargs in getattr(method, "_routes", []):
                self.app.route(*args, **kwargs)(method)

            if hasattr(method, "_websocket_args"):
                self.app.websocket(*method._websocket_args, **method._websocket_kwargs)(method)

    def reload(self) -> bool:
        # A broken edit must not end the watch loop, the next save gets another try.
        try:
            self.builder.load()
        except QuireError as e:
            logger.error("Reload failed, keeping the previous content: %s", e)
            return False
        return True

    async def reload_on_changes(self):
        async for changes in awatch(self.config.root, watch_filter=self.is_watched):
            logger.info("%d change(s) detected, reloading", len(changes))
            if self.reload():
                await websocket.send("reload")

    def is_watched(self, change, path: str) -> bool:
        # Files in the output directory are never sources.
        return not str(path).startswith(str(self.config.output_dir))

    def strip_prefix(self, url: str) -> str:
        # Pages are stored without the path prefix, the browser requests them with it.
        prefix = self.config.path_prefix
        if prefix == "/":
            return url
        if url + "/" == prefix:
            return "/"
        if url.startswith(prefix):
            return "/" + url[len(prefix):]
        return url

    def passthrough_file(self, path: str):
        file_path = (self.config.root / path).resolve()
        for passthrough in self.config.passthrough:
            allowed = (self.config.root / passthrough).resolve()
            if file_path == allowed or file_path.is_relative_to(allowed):
                return file_path if file_path.is_file() else None
        return None

    @route("/" + HIGHLIGHT_STYLESHEET)
    async def stylesheet(self):
        return Response(highlight_css(self.config.markdown.code_style), mimetype="text/css")

    @inject_js_reloader
    @route("/", defaults={"path": ""})
    @route("/<path:path>")
    async def page(self, path):
        url = self.strip_prefix("/" + path)

        html = self.builder.render_url(url)
        if html is None and not url.endswith("/"):
            html = self.builder.render_url(url + "/")

        if html is not None:
            return html

        file_path = self.passthrough_file(url.lstrip("/"))
        if file_path is not None:
            return await send_file(file_path)

        return Response("<h1>404 Not Found</h1>", status=404, mimetype="text/html")

    @ws("/ws")
    async def ws(self):
        await websocket.accept()
        await self.reload_on_changes()

    def run(self):
        self.app.run(self.host, self.port, debug=True)
