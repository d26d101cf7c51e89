import sys

from jsonparquet.execution.config_executor import ConfigExecutor


def main():
    if len(sys.argv) != 2:
        print("Usage: python -m jsonparquet.run_config <config.yaml>")
        sys.exit(1)

    config_path = sys.argv[1]
    executor = ConfigExecutor(config_path)
    result = executor.execute()

    print("\n=== Execution Completed ===")
    print(f"Schema: {result.get('schema')}")
    print(f"Rows: {result.get('rows')}")
    print(f"Output: {result.get('output')}")
    if result.get("diagnostics"):
        print(f"Diagnostics: {len(result['diagnostics'])} (see log)")


if __name__ == "__main__":
    main()
