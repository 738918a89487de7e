from kasir.models.kv_entry import KVEntry
