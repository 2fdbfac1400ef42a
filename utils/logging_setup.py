import logging

_configured = False


def configure_logging(level='INFO'):
    """Attach a single console handler to the root logger"""
    global _configured
    if _configured:
        logging.getLogger().setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s  %(levelname)-7s  %(name)s  %(message)s',
        datefmt='%H:%M:%S',
    ))
    logging.basicConfig(handlers=[handler], level=level, force=True)
    # urllib3 logs every connection at debug
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    _configured = True
