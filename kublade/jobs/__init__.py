"""
Background jobs.

Jobs run on Celery workers fed from Redis. Dispatchers enumerate records and
enqueue one action job per record; unique jobs refuse to be enqueued twice
while one instance is outstanding.
"""
