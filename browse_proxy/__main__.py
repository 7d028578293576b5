import uvicorn

from browse_proxy.vars import HOST, LOG_LEVEL, PORT


def main() -> None:
    # proxy_headers lets X-Forwarded-Proto decide the scheme of rewritten links
    uvicorn.run(
        "browse_proxy.server:app",
        host=HOST,
        port=PORT,
        log_level=LOG_LEVEL,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
