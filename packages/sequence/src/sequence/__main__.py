from sequence.cli import main

main(prog_name="sequence")
