import logging


def setup_logger(level: int = logging.INFO) -> logging.Logger:
    """
    Создаёт и настраивает логгер проекта ``kmeans_kernels``.

    :param level: минимальный уровень логирования
    :return: настроенный экземпляр :class:`logging.Logger`
    """
    logger = logging.getLogger("kmeans_kernels")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Чтобы сообщения не дублировались через root-логгер
    logger.propagate = False

    return logger


def format_shape_prefix(n: int, k: int, dim: int, metric: str | None = None) -> str:
    """Текстовый префикс для логов по форме задачи: ``[N=.. K=.. DIM=.. metric=..]``."""
    prefix = f"[N={n} K={k} DIM={dim}"
    if metric is not None:
        prefix += f" metric={metric}"
    return prefix + "]"
