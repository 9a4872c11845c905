"""CPU-bound handler. Lives in its own module so child processes can import it."""


def is_prime(n: int) -> bool:
    if n < 2:
        return False
    return all(n % d for d in range(2, int(n**0.5) + 1))


def handler(context, event, args):
    match event:
        case "count_primes":
            lo, hi = args
            return sum(1 for n in range(lo, hi) if is_prime(n))
        case "checksum":
            return context.deps["hashlib"].sha256(args.encode()).hexdigest()
    raise ValueError(f"unknown event {event!r}")
