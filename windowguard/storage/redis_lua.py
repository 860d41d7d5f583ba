"""Redis Lua scripts for atomic counter management.

These scripts run as one indivisible unit on the server, so the increment,
first-write expiry and TTL read cannot interleave with other clients.
Issuing INCR and PEXPIRE as separate calls would race and could leave
counters without an expiry.
"""

# Atomic fixed-window increment
# KEYS[1] = counter key
# ARGV[1] = TTL in milliseconds for a newly created counter
# ARGV[2] = caller's current time in epoch milliseconds
# Returns {count, window_expires_ms}
INCREMENT_SCRIPT = """
    local key    = KEYS[1]
    local ttl_ms = tonumber(ARGV[1])
    local now    = tonumber(ARGV[2])

    local count = redis.call('INCR', key)

    -- First write of this window: fix its lifetime
    if count == 1 then
        redis.call('PEXPIRE', key, ttl_ms)
    end

    -- Existing windows keep their original expiry
    local pttl = redis.call('PTTL', key)
    local remaining = ttl_ms
    if pttl > 0 then
        remaining = pttl
    end

    return {count, now + remaining}
"""
