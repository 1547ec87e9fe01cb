"""Framework-independent REST handlers for entities, relations, graph and replay."""