"""Client-side pieces: realtime notification mirror, interval timer, local storage."""
