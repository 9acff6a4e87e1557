def format_time(seconds: float) -> str:
    s = int(seconds)
    hours = s // 3600
    minutes = (s % 3600) // 60
    seconds = s % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"

def format_progress(position: float, duration: float) -> str:
    if duration <= 0:
        return f"{format_time(position)} / --:--"
    percent = position / duration * 100
    return f"{format_time(position)} / {format_time(duration)} ({percent:.1f}%)"
