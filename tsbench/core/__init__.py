"""
Benchmark core: workload synthesis, out-of-order scheduling, client
orchestration and measurement.
"""
