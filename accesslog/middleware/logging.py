import inspect
import time
from typing import Awaitable, Callable, Optional

from accesslog.config import LoggerConfig
from accesslog.models.context import Context

Handler = Callable[[Context], Awaitable[Optional[Exception]]]

_now = time.perf_counter_ns


def request_logger(config: LoggerConfig) -> Callable[[Handler], Handler]:
    """Build a middleware giving an access-log style record for each request.

    The returned factory wraps the next handler in the chain. Errors raised
    or returned by it are bound to the record and handed to ``ctx.error`` so
    the host can still render its error response; the wrapped handler itself
    always returns ``None``.
    """
    if not isinstance(config, LoggerConfig):
        config = LoggerConfig.model_validate(config)

    def middleware(next_handler: Handler) -> Handler:
        async def handler(ctx: Context) -> None:
            start = _now()

            try:
                err = next_handler(ctx)
                if inspect.isawaitable(err):
                    err = await err
                if not isinstance(err, Exception):
                    err = None
            except Exception as exc:
                err = exc
            elapsed = _now() - start

            log = config.log
            if err is not None:
                log = log.bind(error=str(err) or type(err).__name__)
                try:
                    await ctx.error(err)
                except Exception as exc:
                    # logged next to the original error
                    log = log.bind(error_handler_error=str(exc) or type(exc).__name__)

            req = ctx.request
            res = ctx.response

            fields = {
                "remote_ip": ctx.real_ip(),
                "time": format_duration(elapsed),
                "host": req.host,
                "request": f"{req.method} {req.request_uri}",
                "status": res.status,
                "size": res.size,
                "user_agent": req.user_agent,
            }

            request_id = req.headers.get(config.request_id_header, "")
            if not request_id:
                request_id = res.headers.get(config.request_id_header, "")
            if request_id:
                fields["request_id"] = request_id

            n = res.status
            if n >= 500:
                log.error("Server error", **fields)
            elif n >= 400:
                log.warning("Client error", **fields)
            elif n >= 300:
                log.info("Redirection", **fields)
            elif n >= 200:
                if not config.skip_2xx:
                    log.info("Success", **fields)
            else:
                log.info("Success", **fields)

            return None

        return handler

    return middleware


def format_duration(ns: int) -> str:
    """Render nanoseconds the way Go's time.Duration prints, e.g. 1.5ms or 2m3.25s."""
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)

    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_frac(ns, 3)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_frac(ns, 6)}ms"

    out = f"{_frac(ns % 60_000_000_000, 9)}s"
    minutes = ns // 60_000_000_000
    if minutes:
        out = f"{minutes % 60}m{out}"
        hours = minutes // 60
        if hours:
            out = f"{hours}h{out}"
    return sign + out


def _frac(value: int, precision: int) -> str:
    whole, frac = divmod(value, 10 ** precision)
    digits = f"{frac:0{precision}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)
