# Patient Ledger CLI Application
try:
    from .config import DEFAULT_DIFFICULTY, STORAGE_FILE
    from .miner import MiningCancelled
    from .records import input_patient_record
    from .storage import JsonFileStore, load_blockchain, save_blockchain
    from .views import (
        show_chain, show_patients, show_patient_history, show_stats,
        validate_and_report, view_access_logs,
    )
except ImportError:
    from config import DEFAULT_DIFFICULTY, STORAGE_FILE
    from miner import MiningCancelled
    from records import input_patient_record
    from storage import JsonFileStore, load_blockchain, save_blockchain
    from views import (
        show_chain, show_patients, show_patient_history, show_stats,
        validate_and_report, view_access_logs,
    )


def add_patient(bc, store):
    record = input_patient_record(bc)
    if not record:
        return

    print("Mining block...")

    def progress(nonce):
        print(f"  tried {nonce} nonces", end="\r")

    try:
        blk = bc.add_block(record, on_progress=progress)
    except KeyboardInterrupt:
        print("\nMining interrupted. Ledger unchanged.")
        return
    except MiningCancelled:
        print("Mining cancelled. Ledger unchanged.")
        return

    save_blockchain(store, bc)
    print(f"Patient {record['name']} added in block {blk.index} (nonce {blk.nonce}).")


def main(store=None):
    store = store or JsonFileStore(STORAGE_FILE)
    bc = load_blockchain(store, difficulty=DEFAULT_DIFFICULTY)

    print("Patient Blockchain CLI")

    while True:
        print("\n--- Main Menu ---")
        print("1. Add Patient Record")
        print("2. View Blockchain")
        print("3. All Patients")
        print("4. Patient History")
        print("5. Statistics")
        print("6. Validate Blockchain Integrity")
        print("7. View Access Logs")
        print("8. Reset Blockchain")
        print("9. Save & Exit")

        choice = input("Choose option: ").strip()
        if choice == "1":
            add_patient(bc, store)
        elif choice == "2":
            show_chain(bc)
        elif choice == "3":
            show_patients(bc)
        elif choice == "4":
            show_patient_history(bc, input("Patient ID: ").strip())
        elif choice == "5":
            show_stats(bc)
        elif choice == "6":
            validate_and_report(bc)
        elif choice == "7":
            view_access_logs(bc)
        elif choice == "8":
            confirm = input("This discards every block. Type RESET to confirm: ").strip()
            if confirm == "RESET":
                bc.reset()
                save_blockchain(store, bc)
                print("Blockchain reset to a new genesis block.")
            else:
                print("Reset aborted.")
        elif choice == "9":
            save_blockchain(store, bc)
            print(f"Ledger saved to {store.filename}")
            print("Exiting.")
            break
        else:
            print("Invalid choice.")


if __name__ == "__main__":
    main()
