"""Shared utilities: parallelism and seeds.

Componentes expostos
--------------------
- `parallel` → execução paralela com fail-fast (threads, processos, joblib).
- `seed` → seed mestre e streams independentes por worker.

Importe via ``from bootstrap_lab.utils.parallel import ...`` para manter acoplamento baixo.
"""
