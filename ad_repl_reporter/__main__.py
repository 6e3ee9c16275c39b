from ad_repl_reporter.cli import main

if __name__ == "__main__":
    main()
