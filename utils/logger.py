import logging
from datetime import datetime
from pathlib import Path

def setup_logger(name: str, log_dir: str = "logs") -> logging.Logger:
    log_dir = Path(log_dir) / name
    log_dir.mkdir(parents=True, exist_ok=True)
    
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    
    # Повторный вызов не должен дублировать записи
    if logger.handlers:
        return logger
    
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    
    file_handler = logging.FileHandler(log_dir / f"{datetime.now().date()}.log")
    file_handler.setFormatter(formatter)
    
    logger.addHandler(file_handler)
    return logger

def cleanup_old_logs(log_dir: str = "logs", retention_days: int = 30) -> int:
    """Удаление лог-файлов старше retention_days дней"""
    cutoff = datetime.now().timestamp() - retention_days * 86400
    removed = 0
    logs_dir = Path(log_dir)
    
    if logs_dir.exists():
        for log_file in logs_dir.glob("**/*.log"):
            if log_file.stat().st_mtime < cutoff:
                log_file.unlink()
                removed += 1
    return removed
