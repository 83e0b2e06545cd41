import argparse
import logging
import os
import shlex
import sys
import tempfile

from fips_validator.errors import FipsValidatorError
from fips_validator.executor import execute
from fips_validator.models import Status, ValidationResult
from fips_validator.openssl import nm_timeout_from_env, scan_for_approved_crypto
from fips_validator.scanner import scan_tree
from fips_validator.validation import validate_binary

logger = logging.getLogger("fips_validator")


def print_result(result: ValidationResult) -> None:
    print(f"• validating binary {result.path}... ", end="")
    if result.status is Status.PASSED:
        print("success")
    elif result.status is Status.SKIPPED:
        print(f"skipped ({result.detail})")
    elif result.status is Status.ERROR:
        print(f"error ({result.detail})")
    else:
        print("failed")
        for reason in result.reasons:
            print(f"  ✘ {reason}")


def validate_one(path: str) -> bool:
    path = os.path.abspath(path)
    print(f"Validating binary {path!r}:")
    result = validate_binary("/", path)
    print_result(result)
    return result.ok


def validate_dir(path: str) -> bool:
    path = os.path.abspath(path)
    print(f"Validating directory {path!r}:")
    return scan_tree(path, on_result=print_result)


def validate_rpm(path: str) -> bool:
    path = os.path.abspath(path)
    print(f"Validating RPM package {path!r}:")
    with tempfile.TemporaryDirectory(prefix="fips-validator-") as tmp:
        logger.debug("using temporary directory %s", tmp)
        print("• unpacking RPM... ", end="")
        result = execute("sh", "-c", f"rpm2cpio {shlex.quote(path)} | cpio -idm", cwd=tmp)
        if result.returncode != 0:
            raise FipsValidatorError(
                f"failed to unpack RPM, exit code {result.returncode}: "
                f"{result.stderr.decode(errors='replace')}"
            )
        print("done")
        return scan_tree(tmp, on_result=print_result)


def validate_image(image_ref: str) -> bool:
    print(f"Validating OCI image {image_ref!r}:")
    mount_path = mount_image(image_ref)
    try:
        logger.debug("image mounted at %s", mount_path)
        all_valid = True

        print("• validating libcrypto is present and FIPS-capable... ", end="")
        verdict = scan_for_approved_crypto(mount_path, timeout=nm_timeout_from_env())
        if verdict.ok:
            print("success")
        else:
            print("failed")
            for reason in verdict.reasons:
                print(f"  ✘ {reason}")
            all_valid = False

        if not scan_tree(mount_path, on_result=print_result):
            all_valid = False
        return all_valid
    finally:
        unmount_image(image_ref)


def mount_image(image_ref: str) -> str:
    print("• checking OCI image exists locally... ", end="")
    if execute("podman", "image", "exists", image_ref).returncode == 0:
        print("found")
    else:
        print("not found")
        print("• pulling image... ", end="")
        result = execute("podman", "pull", image_ref)
        if result.returncode != 0:
            raise FipsValidatorError(
                f"failed to pull image, exit code {result.returncode}: "
                f"{result.stderr.decode(errors='replace')}"
            )
        print("done")

    print("• mounting OCI image... ", end="")
    result = execute("podman", "image", "mount", image_ref)
    if result.returncode != 0:
        raise FipsValidatorError(
            f"failed to mount image, exit code {result.returncode}: "
            f"{result.stderr.decode(errors='replace')}"
        )
    print("done")
    return result.stdout.decode().strip()


def unmount_image(image_ref: str) -> None:
    print("• unmounting OCI image... ", end="")
    try:
        result = execute("podman", "image", "unmount", image_ref)
    except FipsValidatorError as e:
        print("failed")
        logger.error("failed to unmount image: %s", e)
        return
    if result.returncode != 0:
        print("failed")
        logger.error("failed to unmount image, exit code %d: %s",
                     result.returncode, result.stderr.decode(errors="replace"))
        return
    print("done")


MODES = {
    "binary": validate_one,
    "dir": validate_dir,
    "rpm": validate_rpm,
    "image": validate_image,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fips-validator",
        description="Validate that a binary, directory, RPM package or OCI image "
                    "is capable of running in FIPS mode.",
        epilog="Images are mounted with podman; run as "
               "'podman unshare -- fips-validator image <ref>' when rootless.",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug output")
    parser.add_argument("mode", choices=sorted(MODES), help="what kind of target to validate")
    parser.add_argument("target", help="path or image reference")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # Debug flag: --debug or DEBUG=1
    debug = args.debug or os.getenv("DEBUG", "0") == "1"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )

    try:
        valid = MODES[args.mode](args.target)
    except (FipsValidatorError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not valid:
        print("Validation failed")
        return 1
    print("Validation successful")
    return 0


if __name__ == "__main__":
    sys.exit(main())
