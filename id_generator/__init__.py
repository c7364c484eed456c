"""
id_generator — Stable pseudonymous patient identifiers for data sharing.

Assigns each patient seen in a sample batch a permanent sequential identity
(HMF000001, HMF000002, ...) together with a password-keyed hash, so exported
data never carries the source patient identifiers.

Incremental Runs
----------------
Every run takes the previous run's output as input and produces a new one:

1. Patients already anonymised keep their sequence id, even when they are
   missing from the current batch.  The output only ever grows.
2. New patients get the next free sequence id, in batch order.
3. Patients declared to be the same person (the alias map) collapse onto the
   canonical patient's identity.  When both were anonymised independently in
   an earlier run, the alias keeps a record of the identity it used to have,
   so data exported under the old id can be re-linked.
4. Changing the password re-hashes every touched patient but never changes a
   sequence id.
"""

__version__ = "0.1.0"
