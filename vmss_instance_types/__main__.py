from vmss_instance_types.cli import main

if __name__ == "__main__":
    main()
